from interview_runtime.exports.report import (
    ExportBundle,
    build_export_bundle,
    export_filename,
    render_csv,
    render_json,
    results_payload,
)

__all__ = [
    "ExportBundle",
    "build_export_bundle",
    "export_filename",
    "render_csv",
    "render_json",
    "results_payload",
]
