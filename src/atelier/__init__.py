"""Atelier Catalog - local artwork cataloguing with AI drafting and a credential vault."""

__version__ = "0.1.0"
