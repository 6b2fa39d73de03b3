"""otpgate CLI — ``python -m otpgate``.

Usage:
    python -m otpgate status                 # Effective configuration
    python -m otpgate new-secret alice       # Secret + provisioning URI
    python -m otpgate code SECRET            # Current TOTP code
    python -m otpgate check SECRET 123456    # Verify a code
    python -m otpgate parse-uri URI          # Inspect an otpauth:// URI
    python -m otpgate gen-key                # New master key
    python -m otpgate init-db                # Create the account_security table
"""

from otpgate.cli import main

if __name__ == "__main__":
    main()
