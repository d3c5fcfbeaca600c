"""
Request-for-quotation (RFQ) workbooks.

Outbound: one Excel workbook per (product category, vendor) listing the
quotation items the vendor should price, plus a master summary.
Inbound: read a returned workbook's filled-in rates back as vendor rates.
"""
