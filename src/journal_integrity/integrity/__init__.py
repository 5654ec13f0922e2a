"""Integrity module - hash chain, Merkle checkpoints, proofs and certificates."""

from .merkle_tree import MerkleTree, MerkleProof, ProofStep, compute_merkle_root
from .ledger import HashChainLedger, ProcessInsights
from .checkpointer import MerkleCheckpointer, VerificationResult
from .proofs import ProofService
from .validator import ChainValidator, ValidationReport
from .certificates import CertificateBuilder, CertificateRequest

__all__ = [
    "MerkleTree",
    "MerkleProof",
    "ProofStep",
    "compute_merkle_root",
    "HashChainLedger",
    "ProcessInsights",
    "MerkleCheckpointer",
    "VerificationResult",
    "ProofService",
    "ChainValidator",
    "ValidationReport",
    "CertificateBuilder",
    "CertificateRequest",
]
