"""Dispatch Tag Scanner.

Extracts part number, part name, and quantity from photographs of
printed industrial dispatch tags using ROI cropping, blur rejection,
threshold enhancement, Tesseract OCR, and anchor-based field parsing.
"""

__version__ = "1.0.0"
