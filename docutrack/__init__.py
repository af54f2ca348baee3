"""DocuTrack: office-to-office document routing and tracking."""

__version__ = "0.1.0"
