"""TrustGate: decides when a login needs a second factor, based on where it comes from."""

__version__ = "0.1.0"
