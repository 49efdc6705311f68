"""Invoicing ROI simulator.

- simulation: input validation and the savings/ROI calculation engine
- scenarios: file-backed store of named scenarios
- exports: PDF report and Markdown summary renderers
- api: Flask HTTP service
"""

__version__ = "0.1.0"
