"""
Social-timestamp witness backend.

Posts a short public message carrying a fixed marker, a prefix of the
checkpoint root and the journal id. Verification fetches the post and looks
for the marker and the matching root prefix.
"""

import logging

import httpx

from ..errors import WitnessError
from ..records import WitnessType
from .base import HttpWitnessBackend, WitnessMetadata, WitnessVerdict

logger = logging.getLogger("journal_integrity.witness.social")

MAX_MESSAGE_LENGTH = 280


class SocialTimestampBackend(HttpWitnessBackend):
    """Witness checkpoints as timestamped public posts."""

    witness_type = WitnessType.SOCIAL_TIMESTAMP

    ROOT_PREFIX_LENGTH = 16

    def __init__(
        self,
        api_url: str,
        bearer_token: str,
        marker: str = "#WritingJournalWitness",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.api_url = api_url.rstrip("/")
        self.bearer_token = bearer_token
        self.marker = marker

    def compose_message(self, root: str, metadata: WitnessMetadata) -> str:
        start, end = metadata.entry_range
        message = (
            f"{self.marker} {root[: self.ROOT_PREFIX_LENGTH]} "
            f"journal:{metadata.journal_id} entries:{start}-{end} "
            f"at {metadata.timestamp.strftime('%Y-%m-%dT%H:%M:%SZ')}"
        )
        return message[:MAX_MESSAGE_LENGTH]

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.bearer_token}"}

    async def post(self, text: str) -> str:
        """Publish a post and return its id."""
        async with self.http() as client:
            response = await client.post(
                f"{self.api_url}/tweets",
                json={"text": text},
                headers=self._headers,
            )
            response.raise_for_status()
            data = self.json_body(response, "Social API").get("data")
            post_id = data.get("id") if isinstance(data, dict) else None

        if not post_id:
            raise WitnessError("Social API accepted the post but returned no id")
        return str(post_id)

    async def fetch(self, post_id: str) -> str | None:
        """Fetch a post's text, or None if it does not exist."""
        async with self.http() as client:
            response = await client.get(f"{self.api_url}/tweets/{post_id}", headers=self._headers)

        if response.status_code in (404, 410):
            return None
        if response.status_code >= 500:
            raise WitnessError(f"Social API returned {response.status_code}")
        response.raise_for_status()
        data = self.json_body(response, "Social API").get("data")
        if data is None:
            return None  # deleted posts answer 200 with only an errors list
        if not isinstance(data, dict):
            raise WitnessError("Social API returned malformed post data")
        text = data.get("text")
        return text if isinstance(text, str) else None

    async def submit(self, root: str, metadata: WitnessMetadata) -> str:
        post_id = await self.post(self.compose_message(root, metadata))
        logger.info(
            "Posted checkpoint root to social timestamp",
            extra={"journal_id": metadata.journal_id, "merkle_root": root, "witness_proof": post_id},
        )
        return post_id

    async def check(self, witness_proof: str, expected_root: str | None = None) -> WitnessVerdict:
        text = await self.fetch(witness_proof)
        if text is None or self.marker not in text:
            return WitnessVerdict.INVALID
        if expected_root is not None and expected_root[: self.ROOT_PREFIX_LENGTH] not in text:
            return WitnessVerdict.INVALID
        return WitnessVerdict.CONFIRMED

    def url_for(self, witness_proof: str) -> str | None:
        return f"{self.api_url}/tweets/{witness_proof}"
