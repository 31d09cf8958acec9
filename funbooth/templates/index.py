def get_html_template() -> str:
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>Fun Photobooth</title>
        <link rel="stylesheet" href="/static/css/styles.css">
    </head>
    <body>
        <div class="container">
            <!-- Header -->
            <div class="header">
                <h1>📸 Fun Photobooth</h1>
                <div class="tabs">
                    <button class="tab active" data-tab="camera" onclick="showTab('camera')">📷 Camera</button>
                    <button class="tab" data-tab="gallery" onclick="showTab('gallery')">🖼️ Gallery</button>
                </div>
            </div>

            <!-- Camera Tab -->
            <div id="cameraTab" class="tab-content">
                <!-- Step 1: Layout -->
                <div id="layoutStep" class="step">
                    <h2>Choose your layout</h2>
                    <div class="option-grid" id="layoutOptions"></div>
                </div>

                <!-- Step 2 and 3: Customize / Capture -->
                <div id="boothStep" class="step hidden">
                    <div class="preview-container" id="previewContainer">
                        <img id="preview" src="" alt="Camera Preview" />
                        <div id="overlayLayer" class="overlay-layer"></div>
                        <div class="countdown hidden" id="countdown">3</div>
                    </div>

                    <div id="cameraError" class="camera-error hidden">
                        <p id="cameraErrorText"></p>
                        <button class="btn btn-primary" onclick="retryCamera()">Try Again</button>
                    </div>

                    <div id="customizePanel">
                        <div class="setting-label">Filter</div>
                        <div class="button-group" id="filterOptions"></div>
                        <div class="setting-label">Frame</div>
                        <div class="button-group" id="frameOptions"></div>
                        <div class="setting-label">Stickers <small>(drag to move, double-click to remove)</small></div>
                        <div class="button-group" id="stickerOptions"></div>
                    </div>

                    <div class="progress" id="captureProgress"></div>
                    <div class="thumbnails" id="thumbnails"></div>

                    <div class="action-buttons">
                        <button class="btn btn-secondary" onclick="goBack()">⬅️ Back</button>
                        <button class="btn btn-primary" id="startBtn" onclick="startCapture()">Next: Take Photos</button>
                        <button class="btn btn-primary hidden" id="captureBtn" onclick="capture()">📸 Start</button>
                    </div>
                </div>
            </div>

            <!-- Gallery Tab -->
            <div id="galleryTab" class="tab-content hidden">
                <h2 id="galleryTitle">🖼️ Your Photo Gallery</h2>
                <div id="galleryContent" class="gallery-grid">Loading...</div>
            </div>
        </div>

        <div class="flash" id="flash"></div>
        <div class="toast hidden" id="toast"></div>

        <script src="/static/js/app.js"></script>
    </body>
    </html>
    """
