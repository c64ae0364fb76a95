"""AssetDesk: IT asset and incident tracking backend."""

__version__ = "0.1.0"
