"""
Quotation documents for customers and internal reporting.

    pdf_renderer.py    Customer-facing quotation PDF (PyMuPDF)
    excel_renderer.py  Quotation workbook and search-result listings (openpyxl)
"""
