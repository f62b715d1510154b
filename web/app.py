#!/usr/bin/env python3
"""
pdfsqueeze - Flask Web Application

A local web API for PDF compression with real-time progress tracking.
"""

import os
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import Dict

from flask import (
    Flask,
    jsonify,
    request,
    send_file,
)
from flask_cors import CORS
from werkzeug.utils import secure_filename

# Add parent directory to path to import pdfsqueeze
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from pdfsqueeze import (
    CancellationToken,
    CompressionCancelled,
    CompressionEngine,
    CompressionError,
    CompressionRequest,
    inspect_document,
)
from pdfsqueeze.config import (
    DEFAULT_CUSTOM_DPI,
    DEFAULT_CUSTOM_QUALITY,
    DEFAULT_PRESET,
    DEFAULT_STRIP_METADATA,
)
from pdfsqueeze.utils import parse_size

app = Flask(__name__)
app.secret_key = os.urandom(24)
CORS(app)

# Configuration
UPLOAD_FOLDER = Path(tempfile.gettempdir()) / "pdfsqueeze_uploads"
OUTPUT_FOLDER = Path(tempfile.gettempdir()) / "pdfsqueeze_output"
ALLOWED_EXTENSIONS = {"pdf"}
MAX_CONTENT_LENGTH = 500 * 1024 * 1024  # 500MB max upload

app.config["UPLOAD_FOLDER"] = UPLOAD_FOLDER
app.config["OUTPUT_FOLDER"] = OUTPUT_FOLDER
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

# Create folders
UPLOAD_FOLDER.mkdir(parents=True, exist_ok=True)
OUTPUT_FOLDER.mkdir(parents=True, exist_ok=True)

engine = CompressionEngine()

# Job tracking
jobs: Dict[str, dict] = {}
job_tokens: Dict[str, CancellationToken] = {}
jobs_lock = threading.Lock()


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def cleanup_old_files(max_age_hours: int = 1):
    """Clean up files older than max_age_hours."""
    now = time.time()
    max_age_seconds = max_age_hours * 3600

    for folder in [app.config["UPLOAD_FOLDER"], app.config["OUTPUT_FOLDER"]]:
        for file_path in Path(folder).iterdir():
            if file_path.is_file():
                age = now - file_path.stat().st_mtime
                if age > max_age_seconds:
                    file_path.unlink(missing_ok=True)


def request_from_payload(data: dict) -> CompressionRequest:
    """
    Build a CompressionRequest from the JSON body of /api/compress.

    Raises:
        ValueError: If the settings are invalid
    """
    mode = data.get("mode", "preset")
    strip_metadata = bool(data.get("strip_metadata", DEFAULT_STRIP_METADATA))
    grayscale = bool(data.get("grayscale", False))

    if mode == "preset":
        return CompressionRequest.from_preset(data.get("preset", DEFAULT_PRESET), grayscale=grayscale)

    dpi = data.get("dpi", DEFAULT_CUSTOM_DPI)

    if mode == "custom":
        return CompressionRequest.custom(
            quality=int(data.get("quality", DEFAULT_CUSTOM_QUALITY)),
            dpi=float(dpi),
            strip_metadata=strip_metadata,
            grayscale=grayscale,
        )

    if mode == "target":
        target = data.get("target_size")
        if target is None:
            raise ValueError("Target size mode requires target_size")
        if isinstance(target, bool):
            raise ValueError(f"Invalid target_size: {target!r}")
        target_bytes = target if isinstance(target, int) else parse_size(str(target))
        return CompressionRequest.target_size(
            target_bytes,
            dpi=float(dpi),
            strip_metadata=strip_metadata,
        )

    raise ValueError(f"Unknown mode: {mode}")


@app.route("/api/upload", methods=["POST"])
def upload_file():
    """Handle PDF upload and return page count and size estimates."""
    cleanup_old_files()

    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    file = request.files["file"]

    if file.filename == "":
        return jsonify({"error": "No file selected"}), 400

    if not allowed_file(file.filename):
        return jsonify({"error": "Only PDF files are allowed"}), 400

    # Generate unique ID for this upload
    file_id = str(uuid.uuid4())
    filename = secure_filename(file.filename)
    file_path = Path(app.config["UPLOAD_FOLDER"]) / f"{file_id}_{filename}"

    file.save(file_path)

    try:
        info = inspect_document(file_path.read_bytes())
    except CompressionError as e:
        file_path.unlink(missing_ok=True)
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "file_id": file_id,
        "filename": filename,
        "analysis": info.to_dict(),
    })


@app.route("/api/compress", methods=["POST"])
def start_compression():
    """Start compression job."""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "No data provided"}), 400

    file_id = data.get("file_id")
    filename = data.get("filename")

    if not all([file_id, filename]):
        return jsonify({"error": "Missing required fields"}), 400

    # Find the uploaded file
    file_path = Path(app.config["UPLOAD_FOLDER"]) / f"{file_id}_{secure_filename(filename)}"
    if not file_path.exists():
        return jsonify({"error": "File not found. Please upload again."}), 404

    try:
        compression_request = request_from_payload(data)
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid settings: {e}"}), 400

    # Create job
    job_id = str(uuid.uuid4())
    token = CancellationToken()

    with jobs_lock:
        jobs[job_id] = {
            "status": "starting",
            "stage": "Initializing",
            "progress": 0,
            "file_id": file_id,
            "filename": filename,
            "mode": compression_request.mode.value,
            "result": None,
            "error": None,
            "output_file": None,
        }
        job_tokens[job_id] = token

    # Start compression in background thread
    thread = threading.Thread(
        target=run_compression_job,
        args=(job_id, file_path, compression_request, token),
        daemon=True,
    )
    thread.start()

    return jsonify({"job_id": job_id})


def run_compression_job(
    job_id: str,
    file_path: Path,
    compression_request: CompressionRequest,
    token: CancellationToken,
):
    """Run compression job in background."""
    def progress_callback(completed: int, total: int, label: str):
        with jobs_lock:
            if job_id in jobs:
                jobs[job_id]["stage"] = label
                jobs[job_id]["progress"] = max(
                    jobs[job_id]["progress"],
                    int(completed * 100 / total) if total else 100,
                )
                jobs[job_id]["status"] = "processing"

    try:
        result = engine.compress(
            file_path.read_bytes(),
            compression_request,
            progress=progress_callback,
            cancel=token,
        )

        output_filename = f"{job_id}_{Path(jobs[job_id]['filename']).stem}_compressed.pdf"
        output_path = Path(app.config["OUTPUT_FOLDER"]) / output_filename
        output_path.write_bytes(result.data)

        with jobs_lock:
            jobs[job_id]["status"] = "completed"
            jobs[job_id]["stage"] = "Complete"
            jobs[job_id]["progress"] = 100
            jobs[job_id]["result"] = result.to_dict()
            jobs[job_id]["output_file"] = str(output_path)

    except CompressionCancelled:
        with jobs_lock:
            jobs[job_id]["status"] = "cancelled"
            jobs[job_id]["stage"] = "Cancelled"

    except CompressionError as e:
        with jobs_lock:
            jobs[job_id]["status"] = "failed"
            jobs[job_id]["stage"] = "Failed"
            jobs[job_id]["error"] = str(e)

    except Exception as e:
        app.logger.exception("Compression job %s crashed", job_id)
        with jobs_lock:
            jobs[job_id]["status"] = "failed"
            jobs[job_id]["stage"] = "Error"
            jobs[job_id]["error"] = str(e)


@app.route("/api/job/<job_id>")
def get_job_status(job_id: str):
    """Get job status and progress."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        job = jobs[job_id].copy()

    job.pop("output_file", None)
    return jsonify(job)


@app.route("/api/job/<job_id>/cancel", methods=["POST"])
def cancel_job(job_id: str):
    """Ask a running job to stop."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        if jobs[job_id]["status"] in ("completed", "failed", "cancelled"):
            return jsonify({"error": "Job already finished"}), 400

        job_tokens[job_id].cancel()

    return jsonify({"job_id": job_id, "status": "cancelling"})


@app.route("/api/download/<job_id>")
def download_file(job_id: str):
    """Download the compressed PDF."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        job = jobs[job_id]

        if job["status"] != "completed":
            return jsonify({"error": "Job not completed"}), 400

        file_path = Path(job["output_file"])
        original_name = Path(job["filename"]).stem

    if not file_path.exists():
        return jsonify({"error": "File no longer available"}), 404

    return send_file(
        file_path,
        as_attachment=True,
        download_name=f"{original_name}_compressed.pdf",
        mimetype="application/pdf",
    )


@app.route("/api/report/<job_id>")
def get_report(job_id: str):
    """Get compression report as JSON."""
    with jobs_lock:
        if job_id not in jobs:
            return jsonify({"error": "Job not found"}), 404

        job = jobs[job_id]

        if job["status"] != "completed":
            return jsonify({"error": "Job not completed"}), 400

        report = job["result"]

    return jsonify(report)


if __name__ == "__main__":
    engine.warm_up()
    print("Starting pdfsqueeze Web Server...")
    print("API listening on http://localhost:5000/api")
    app.run(debug=True, host="0.0.0.0", port=5000)
