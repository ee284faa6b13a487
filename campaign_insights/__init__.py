"""Campaign attribution and customer journey insights."""

__version__ = "0.1.0"
