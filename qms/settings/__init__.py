"""Company-wide settings: default terms, currency and tax rate."""
