"""Position, account, collateral and margin calculations."""
