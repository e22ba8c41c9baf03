"""
Async client for the agent servers' log endpoint.

Each agent server exposes GET {base_url}/get-log/{username} and answers with
either a JSON body {"logs": [...]} or the plain-text transcript export (see
text_parser). Agents are queried one at a time in configuration order; a
failing agent is skipped and the others still contribute.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from calllog.agents.text_parser import parse_text_logs
from calllog.hashing import log_hash

logger = logging.getLogger(__name__)

_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class AgentLogFetcher:
    """
    Fetches and merges one user's logs from every configured agent server.

    Usage:
        fetcher = AgentLogFetcher({"Hospital": "https://hospital.example"})
        logs = await fetcher.fetch_logs_for_user("alice")
    """

    def __init__(
        self,
        agent_urls: Dict[str, str],
        *,
        timeout: float = 30.0,
        canonical_hash: bool = False,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            agent_urls: Mapping of agent name → base URL, queried in order.
            timeout: Per-request timeout in seconds.
            canonical_hash: Hash with sorted keys when deduplicating.
            http_client: Shared client (tests pass one with a MockTransport).
                When omitted, a client is opened for each fetch.
        """
        self.agent_urls = dict(agent_urls)
        self.timeout = timeout
        self.canonical_hash = canonical_hash
        self._http = http_client

    async def fetch_logs_for_user(self, username: str) -> List[Dict[str, Any]]:
        """
        Return the merged, deduplicated logs for a user across all agents.

        Every record is stamped with the name of the agent it came from. A
        record identical (as received) to one already collected from an
        earlier agent in this call is dropped.

        Never raises: an empty list means nothing could be fetched, not that
        the user has no logs.
        """
        try:
            if self._http is not None:
                return await self._fetch_all(self._http, username)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await self._fetch_all(client, username)
        except Exception as exc:
            logger.error("Network error fetching logs for %s: %s", username, exc)
            return []

    async def _fetch_all(self, client: httpx.AsyncClient, username: str) -> List[Dict[str, Any]]:
        all_logs: List[Dict[str, Any]] = []
        seen_hashes = set()

        for agent, base_url in self.agent_urls.items():
            logs = await self._fetch_agent(client, agent, base_url, username)
            for log in logs:
                if not isinstance(log, dict):
                    logger.warning("Ignoring non-object log entry from agent %s", agent)
                    continue
                received_hash = log_hash(log, canonical=self.canonical_hash)
                if received_hash in seen_hashes:
                    continue
                seen_hashes.add(received_hash)
                log["agent"] = agent
                all_logs.append(log)

        return all_logs

    async def _fetch_agent(
        self, client: httpx.AsyncClient, agent: str, base_url: str, username: str
    ) -> List[Any]:
        """Fetch one agent's logs. Returns [] for any transport or HTTP failure."""
        url = f"{base_url.rstrip('/')}/get-log/{username}"
        logger.info("Fetching logs from agent server %s: %s", agent, url)

        try:
            resp = await client.get(url, headers=_HEADERS, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch from agent server %s: %s", agent, exc)
            return []

        if not resp.is_success:
            logger.warning(
                "Agent server %s returned HTTP %d for %s", agent, resp.status_code, username
            )
            return []

        body = resp.text
        if not body.strip():
            return []

        try:
            data = json.loads(body)
        except ValueError:
            logs = parse_text_logs(body)
            logger.info("Parsed text logs from agent server %s, count: %d", agent, len(logs))
            return logs

        logs = data.get("logs") if isinstance(data, dict) else None
        if not isinstance(logs, list):
            logs = []
        logger.info("Fetched logs from agent server %s, count: %d", agent, len(logs))
        return logs
