"""Vendors, vendor-category assignments and RFQ rate requests."""
