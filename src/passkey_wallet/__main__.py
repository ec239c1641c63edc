"""Allow running with ``python -m passkey_wallet``."""

from passkey_wallet.main import main

if __name__ == "__main__":
    main()
