"""
FarmLedger: staking pools with a fixed-rate, per-period reward stream.

- `farmledger.core`: pure reward accounting (fixed-point, fail-closed)
- `farmledger.state`: persisted records, token ledger, account store
- `farmledger.integration`: instruction processor and configuration
"""

__version__ = "0.1.0"
