"""Daily APR.IO check-in bot for the Monad testnet."""

__version__ = "0.1.0"
