"""rankmint: ranked one-per-address identity issuance with fee accounting."""

__version__ = "0.1.0"
