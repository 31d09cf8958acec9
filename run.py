import uvicorn
from funbooth.config import settings

if __name__ == "__main__":
    print("🚀 Starting Fun Photobooth Server...")
    print(f"🌐 Access the photobooth at: http://{settings.host}:{settings.port}")
    print(f"📁 Photos will be saved to: {settings.photos_dir}")
    print("\n📸 Flow:")
    print("   - Pick a layout: 4x1 strip, 4x2, 2x2 or 3x2 grid")
    print("   - Customize: filter, themed frame and draggable stickers")
    print("   - Capture: 3-2-1 countdown per shot, collage saved to your gallery")
    print("\n🛑 Press Ctrl+C to stop the server\n")

    uvicorn.run(
        "funbooth.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
