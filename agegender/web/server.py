# agegender/web/server.py
"""
Web server đơn giản để chọn model, chụp/upload ảnh và xem tuổi/giới tính.
Truy cập: http://<IP>:5000
"""
import logging

from flask import Flask, render_template_string

from ..core.model_catalog import MODEL_VARIANTS
from ..core.tflite_helper import probe_delegates
from ..processing.display import MODELS_INITIALIZED_MESSAGE
from .analysis import analysis_bp, camera_enabled, get_last_result, get_pipeline, init_analysis

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.register_blueprint(analysis_bp)

HTML_TEMPLATE = '''
<!DOCTYPE html>
<html>
<head>
    <title>Age/Gender Estimation</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <style>
        * { font-family: 'Segoe UI', Arial, sans-serif; margin: 0; padding: 0; box-sizing: border-box; }
        body { background: #f5f7fa; color: #333; padding: 15px; min-height: 100vh; }
        .container { max-width: 720px; margin: 0 auto; }
        h1 { color: #1976d2; margin-bottom: 20px; text-align: center; font-size: 1.5em; }
        .section { background: #fff; border-radius: 12px; padding: 15px; margin-bottom: 15px; border: 1px solid #e0e0e0; box-shadow: 0 2px 4px rgba(0,0,0,0.05); }
        .section-title { color: #1976d2; font-size: 1em; margin-bottom: 12px; }
        .form-group { margin-bottom: 12px; }
        select, input[type="file"] { width: 100%; padding: 8px; border: 1px solid #ccc; border-radius: 6px; }
        label.disabled { color: #999; }
        .btn { background: #1976d2; color: #fff; padding: 8px 16px; border: none; border-radius: 6px; cursor: pointer; font-weight: bold; }
        .btn:hover { background: #1565c0; }
        .status { padding: 10px; border-radius: 8px; margin-bottom: 15px; display: none; }
        .status.success { background: #e8f5e9; color: #2e7d32; display: block; }
        .status.error { background: #ffebee; color: #c62828; display: block; }
        .status.loading { background: #e3f2fd; color: #1976d2; display: block; }
        .results { display: flex; gap: 20px; align-items: center; }
        .results img { width: 160px; border-radius: 8px; border: 2px solid #ddd; }
        .value { font-size: 2em; font-weight: bold; color: #1976d2; }
        .timing { color: #666; font-size: 0.8em; white-space: pre-line; margin-top: 10px; }
        .info { text-align: center; color: #999; padding: 20px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>🧑 Age/Gender Estimation</h1>
        <div id="status" class="status"></div>

        <!-- Khởi tạo models -->
        <div class="section">
            <div class="section-title">🧠 Models ({{ model_status }})</div>
            <form id="initForm">
                <div class="form-group">
                    <select name="model">
                        {% for m in models %}
                        <option value="{{ loop.index0 }}" {{ 'selected' if loop.index0 == selected else '' }}>{{ m.name }}</option>
                        {% endfor %}
                    </select>
                </div>
                <div class="form-group">
                    {% if delegates.nnapi.available %}
                    <label><input type="checkbox" name="use_nnapi"> Use NNAPI</label>
                    {% else %}
                    <label class="disabled"><input type="checkbox" name="use_nnapi" disabled> Use NNAPI ( {{ delegates.nnapi.reason }} ).</label>
                    {% endif %}
                    <br>
                    {% if delegates.gpu.available %}
                    <label><input type="checkbox" name="use_gpu"> Use GPU</label>
                    {% else %}
                    <label class="disabled"><input type="checkbox" name="use_gpu" disabled> Use GPU ( {{ delegates.gpu.reason }} ).</label>
                    {% endif %}
                </div>
                <button type="submit" class="btn">Initialize</button>
            </form>
        </div>

        <!-- Chụp / upload -->
        <div class="section">
            <div class="section-title">📷 Ảnh</div>
            <form id="analyzeForm">
                <div class="form-group"><input type="file" name="image" accept="image/*"></div>
                <button type="submit" class="btn">Analyze</button>
                {% if camera_enabled %}
                <button type="button" class="btn" id="captureBtn">Take Picture</button>
                {% endif %}
            </form>
        </div>

        <!-- Kết quả -->
        <div class="section" id="resultSection">
            {% if result %}
            <div class="results">
                {% if result.face_jpeg %}<img src="data:image/jpeg;base64,{{ result.face_jpeg }}">{% endif %}
                <div>
                    <div>Age</div><div class="value">{{ result.age }}</div>
                    <div>Gender</div><div class="value">{{ result.gender }}</div>
                </div>
            </div>
            <div class="timing">{{ result.inference_text }}</div>
            {% else %}
            <p class="info">Take a picture or upload a photo to estimate age and gender.</p>
            {% endif %}
        </div>
    </div>
    <script>
        const statusEl = document.getElementById('status');
        function showStatus(text, kind) { statusEl.textContent = text; statusEl.className = 'status ' + kind; }

        async function pollStatus() {
            const res = await fetch('/api/models/status');
            const data = await res.json();
            if (data.status === 'loading') { setTimeout(pollStatus, 500); return; }
            if (data.status === 'ready') { showStatus('{{ initialized_message }}', 'success'); }
            else { showStatus(data.error || 'Model initialization failed', 'error'); }
        }

        document.getElementById('initForm').addEventListener('submit', async (e) => {
            e.preventDefault();
            showStatus('Initializing models ...', 'loading');
            const res = await fetch('/api/models/init', { method: 'POST', body: new FormData(e.target) });
            const data = await res.json();
            if (!res.ok) { showStatus(data.error, 'error'); return; }
            pollStatus();
        });

        async function handleResult(res) {
            const data = await res.json();
            if (!res.ok) { showStatus((data.title ? data.title + ': ' : '') + data.error, 'error'); return; }
            window.location.reload();
        }

        document.getElementById('analyzeForm').addEventListener('submit', async (e) => {
            e.preventDefault();
            showStatus('Searching for faces ...', 'loading');
            handleResult(await fetch('/api/analyze', { method: 'POST', body: new FormData(e.target) }));
        });

        const captureBtn = document.getElementById('captureBtn');
        if (captureBtn) {
            captureBtn.addEventListener('click', async () => {
                showStatus('Searching for faces ...', 'loading');
                handleResult(await fetch('/api/capture', { method: 'POST' }));
            });
        }
    </script>
</body>
</html>
'''


@app.route('/')
def index():
    """Trang chủ - chọn model + chụp ảnh"""
    pipeline = get_pipeline()
    selected = pipeline.variant_index if pipeline is not None and pipeline.variant_index is not None else 0
    model_status = pipeline.status.value if pipeline is not None else 'idle'

    return render_template_string(
        HTML_TEMPLATE,
        models=MODEL_VARIANTS,
        selected=selected,
        model_status=model_status,
        initialized_message=MODELS_INITIALIZED_MESSAGE,
        delegates=probe_delegates(),
        camera_enabled=camera_enabled(),
        result=get_last_result(),
    )


def setup_analysis(pipeline, camera_factory=None, pictures_dir="pictures", rotation=0):
    """Gắn pipeline vào web app."""
    init_analysis(pipeline, camera_factory, pictures_dir, rotation)


def run_server(host='0.0.0.0', port=5000):
    """Chạy Flask server (blocking)."""
    logger.info(f"🌐 Web server: http://{host}:{port}")
    app.run(host=host, port=port, debug=False, threaded=True, use_reloader=False)
