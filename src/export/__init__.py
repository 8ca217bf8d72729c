"""PDF exports: sealed single reports and the merged case file."""

from src.export.case_file import delete_case_files, render_case_file, write_case_file
from src.export.sealed_report import render_sealed_report, seal_payload, seal_qr_png, seal_report

__all__ = [
    "render_sealed_report",
    "seal_payload",
    "seal_qr_png",
    "seal_report",
    "render_case_file",
    "write_case_file",
    "delete_case_files",
]
