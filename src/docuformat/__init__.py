"""DocuFormat: local office-document parsing and content normalization."""

__version__ = "0.1.0"
