"""
Merkle Tree over journal entry hashes.

A Merkle Tree is a hash tree where each leaf is the content hash of one
journal entry and each parent is the SHA-256 of its two children's raw
digest bytes concatenated (left || right). The root commits to the exact
leaf set and its order.

Tree shape (fixed; changing it invalidates every issued proof):
- Leaves are taken strictly in sequence order. They are never sorted.
- When a level has an odd number of nodes, the last node is carried up to
  the next level unchanged. It is never duplicated.
- A single-leaf tree has the leaf itself as its root.

Example with five leaves [h1, h2, h3, h4, h5]:

    level 0:  h1  h2  h3  h4  h5
    level 1:  H(h1,h2)  H(h3,h4)  h5
    level 2:  H(H(h1,h2),H(h3,h4))  h5
    root:     H(level2[0], h5)
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from ..errors import ValidationError
from ..hashing import is_hex_digest, require_hex_digest

Position = Literal["left", "right"]


def hash_pair(left: str, right: str) -> str:
    """Hash two hex digests as SHA-256(bytes(left) || bytes(right))."""
    return hashlib.sha256(bytes.fromhex(left) + bytes.fromhex(right)).hexdigest()


@dataclass(frozen=True)
class ProofStep:
    """One sibling on the path from a leaf to the root."""

    position: Position
    hash: str

    def to_dict(self) -> dict[str, str]:
        return {"position": self.position, "hash": self.hash}


@dataclass
class MerkleProof:
    """Proof that a leaf is part of a checkpoint's Merkle Tree."""

    leaf_hash: str
    sibling_path: list[ProofStep]
    root: str
    verified: bool = False
    leaf_index: int | None = None
    checkpoint_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "leaf_hash": self.leaf_hash,
            "sibling_path": [step.to_dict() for step in self.sibling_path],
            "root": self.root,
            "verified": self.verified,
            "leaf_index": self.leaf_index,
            "checkpoint_id": self.checkpoint_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MerkleProof":
        """
        Create from dictionary, validating every hash at the boundary.

        Raises:
            ValidationError: on a malformed hash or sibling position
        """
        steps = []
        for step in data.get("sibling_path", []):
            position = step.get("position")
            if position not in ("left", "right"):
                raise ValidationError("sibling position must be 'left' or 'right'")
            steps.append(ProofStep(position=position, hash=require_hex_digest(step.get("hash"), "sibling hash")))

        return cls(
            leaf_hash=require_hex_digest(data.get("leaf_hash"), "leaf_hash"),
            sibling_path=steps,
            root=require_hex_digest(data.get("root"), "root"),
            verified=bool(data.get("verified", False)),
            leaf_index=data.get("leaf_index"),
            checkpoint_id=data.get("checkpoint_id"),
        )


class MerkleTree:
    """
    Merkle Tree with carry-up handling of odd levels.

    Usage:
        tree = MerkleTree([entry.content_hash for entry in entries])
        root = tree.build()
        proof = tree.get_proof(2)
        is_valid = MerkleTree.verify_proof(proof)
    """

    def __init__(self, leaves: Iterable[str] | None = None):
        """
        Initialize Merkle Tree.

        Args:
            leaves: Leaf hashes in sequence order
        """
        self._leaves: list[str] = []
        self._levels: list[list[str]] = []
        self._built = False

        for leaf in leaves or []:
            self.add_leaf_hash(leaf)

    def add_leaf_hash(self, leaf_hash: str) -> None:
        """Append a pre-computed leaf hash."""
        if self._built:
            raise RuntimeError("Cannot add leaves after tree is built")
        self._leaves.append(require_hex_digest(leaf_hash, "leaf hash"))

    def build(self) -> str:
        """
        Build the tree bottom-up and return the root hash.

        Returns:
            Merkle Root hash
        """
        if not self._leaves:
            raise ValueError("Cannot build empty tree")

        self._levels = [self._leaves.copy()]
        current_level = self._leaves.copy()

        while len(current_level) > 1:
            next_level = [
                hash_pair(current_level[i], current_level[i + 1])
                for i in range(0, len(current_level) - 1, 2)
            ]

            # Odd node out is carried up unchanged
            if len(current_level) % 2 != 0:
                next_level.append(current_level[-1])

            self._levels.append(next_level)
            current_level = next_level

        self._built = True
        return current_level[0]

    @property
    def root(self) -> str | None:
        """Get the Merkle Root (None if not built)."""
        if not self._built:
            return None
        return self._levels[-1][0]

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    @property
    def depth(self) -> int:
        """Number of levels above the leaves."""
        return max(len(self._levels) - 1, 0)

    def get_proof(self, leaf_index: int) -> MerkleProof:
        """
        Generate a Merkle Proof for a leaf.

        A carried node has no sibling at that level, so it contributes no
        step to the path.

        Args:
            leaf_index: Index of the leaf (0-based)

        Returns:
            MerkleProof carrying this tree's root
        """
        if not self._built:
            raise RuntimeError("Tree must be built first")

        if leaf_index < 0 or leaf_index >= len(self._leaves):
            raise IndexError(f"Leaf index {leaf_index} out of range")

        path: list[ProofStep] = []
        index = leaf_index

        for level in self._levels[:-1]:
            if index % 2 == 0:
                if index + 1 < len(level):
                    path.append(ProofStep(position="right", hash=level[index + 1]))
            else:
                path.append(ProofStep(position="left", hash=level[index - 1]))
            index //= 2

        proof = MerkleProof(
            leaf_hash=self._leaves[leaf_index],
            sibling_path=path,
            root=self.root or "",
            leaf_index=leaf_index,
        )
        proof.verified = self.verify_proof(proof)
        return proof

    @staticmethod
    def compute_root_from_proof(proof: MerkleProof) -> str | None:
        """Fold the sibling path into a root, or None if any hash is malformed."""
        if not is_hex_digest(proof.leaf_hash):
            return None

        current = proof.leaf_hash
        for step in proof.sibling_path:
            if not is_hex_digest(step.hash):
                return None
            if step.position == "left":
                current = hash_pair(step.hash, current)
            elif step.position == "right":
                current = hash_pair(current, step.hash)
            else:
                return None
        return current

    @classmethod
    def verify_proof(cls, proof: MerkleProof, expected_root: str | None = None) -> bool:
        """
        Verify a Merkle Proof without any store access.

        Args:
            proof: MerkleProof to verify
            expected_root: Root to compare against (default: proof.root)

        Returns:
            True if leaf + sibling path recompute to the expected root
        """
        target = expected_root if expected_root is not None else proof.root
        if not is_hex_digest(target):
            return False
        return cls.compute_root_from_proof(proof) == target


def compute_merkle_root(leaves: Iterable[str]) -> str:
    """Compute the root of an ordered list of leaf hashes."""
    return MerkleTree(leaves).build()
