"""
Journal Integrity - tamper-evident writing-process journals.

Hash-chained entries, Merkle checkpoints with external witnesses, inclusion
proofs and selective-disclosure certificates.
"""

__version__ = "1.0.0"
