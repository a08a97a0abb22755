"""Identity Document OCR.

Extracts names, dates of birth, Aadhaar and PAN numbers and address
components from photographs of Indian identity documents using OpenCV
preprocessing, Tesseract OCR and per-document-type pattern rules.
"""
