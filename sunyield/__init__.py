"""SunYield solar crowd-investment client."""

__version__ = "0.1.0"
