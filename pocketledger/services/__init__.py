"""Services package: ledger storage backends and account management."""
