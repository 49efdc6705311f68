"""Exports: rendered artefacts built from a simulation result.

- pdf_report.py: email-gated PDF summary (fpdf2)
- reports.py: Markdown summary used by the CLI
"""
