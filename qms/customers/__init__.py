"""Customer directory: contacts, credit terms and quotation history."""
