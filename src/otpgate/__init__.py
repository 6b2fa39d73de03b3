"""otpgate — TOTP multi-factor authentication core."""

__version__ = "0.1.0"
