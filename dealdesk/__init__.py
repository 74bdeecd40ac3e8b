"""DealDesk: founder/investor deal negotiation and payment settlement engine."""

__version__ = "0.1.0"
