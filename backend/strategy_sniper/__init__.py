"""Strategy launch sniper: detect factory launches and swap ETH into the new token."""

__version__ = "0.1.0"
