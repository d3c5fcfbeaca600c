"""File attachments for quotations, customers, vendors and products."""
