"""
OracleNet CLI

Command-line interface for offline membership-tree work.

Usage:
    python -m oraclenet_cli merkle root leaves.json
    python -m oraclenet_cli merkle prove leaves.json --wallet 0x... --issue 1
    python -m oraclenet_cli merkle verify proof.json
    python -m oraclenet_cli config --show
"""

__version__ = "0.1.0"
