"""
TrendScope
AI chart commentary, symbol scanning and a candlestick pattern catalogue
"""

__version__ = "0.1.0"
