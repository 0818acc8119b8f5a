#!/usr/bin/env python3
"""
Session replay for the Voting Ledger API.

Drives one complete voting session over HTTP, phase by phase:
enroll voters, open proposals, submit proposals, close, open voting,
cast ballots, close, tally. Useful as a smoke test of a deployed service.

Usage:
    ledger-replay --base-url http://localhost:8000 --authority owner
"""

import argparse
import logging
import sys
from typing import Dict, List, Mapping, Sequence

import httpx

logger = logging.getLogger(__name__)

# Canonical scenario: four voters, one proposal each, proposal 1 wins 2-1-1
DEFAULT_VOTERS = ["account-1", "account-2", "account-3", "account-4"]
DEFAULT_PROPOSALS = ["Test 1", "Test 2", "Test 3", "Test 4"]
DEFAULT_BALLOTS = {"account-1": 1, "account-2": 1, "account-3": 2, "account-4": 3}


class ReplayError(Exception):
    """Raised when the service rejects a step of the replay."""

    def __init__(self, step: str, status_code: int, message: str):
        self.step = step
        self.status_code = status_code
        self.message = message
        super().__init__(f"{step} failed ({status_code}): {message}")


class SessionReplay:
    """Issues ledger operations against an API client on behalf of principals."""

    def __init__(self, client: httpx.Client, authority: str,
                 api_prefix: str = "/api/v1", caller_header: str = "X-Caller-Id"):
        self.client = client
        self.authority = authority
        self.api_prefix = api_prefix
        self.caller_header = caller_header

    def call(self, step: str, caller: str, method: str, path: str, payload: Dict = None) -> Dict:
        """Send one request as `caller`, raising ReplayError on any non-2xx reply."""
        response = self.client.request(
            method,
            f"{self.api_prefix}{path}",
            json=payload,
            headers={self.caller_header: caller},
        )
        if response.status_code >= 300:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise ReplayError(step, response.status_code, message)

        logger.info(f"{step}: {response.status_code}")
        return response.json()

    def advance(self, action: str) -> Dict:
        return self.call(action, self.authority, "POST", f"/workflow/{action}")


def run_session(
    client: httpx.Client,
    authority: str,
    voters: Sequence[str],
    proposals: Sequence[str],
    ballots: Mapping[str, int],
    api_prefix: str = "/api/v1",
    caller_header: str = "X-Caller-Id",
) -> int:
    """
    Replay a full voting session and return the winning proposal identifier.

    Args:
        client: HTTP client bound to the service base URL
        authority: Administrative principal configured on the service
        voters: Principals to enroll
        proposals: Descriptions, submitted round-robin by the voters
        ballots: Principal -> proposal identifier

    Raises:
        ReplayError: If any step is rejected
    """
    if not voters:
        raise ValueError("at least one voter is required")

    replay = SessionReplay(client, authority, api_prefix, caller_header)

    for subject in voters:
        replay.call("enroll", authority, "POST", "/voters", {"subject": subject})

    replay.advance("start-proposals-registering")

    proposal_ids: List[int] = []
    for index, description in enumerate(proposals):
        proposer = voters[index % len(voters)]
        created = replay.call("add_proposal", proposer, "POST", "/proposals",
                              {"description": description})
        proposal_ids.append(created["proposal_id"])
    logger.info(f"Registered proposals: {proposal_ids}")

    replay.advance("end-proposals-registering")
    replay.advance("start-voting-session")

    for voter, proposal_id in ballots.items():
        replay.call("vote", voter, "POST", "/votes", {"proposal_id": proposal_id})

    replay.advance("end-voting-session")

    result = replay.call("tally", authority, "POST", "/tally")
    return result["winning_proposal_id"]


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Replay a complete voting session against a Voting Ledger API"
    )
    parser.add_argument("--base-url", default="http://localhost:8000",
                        help="Service base URL (default: http://localhost:8000)")
    parser.add_argument("--authority", default="owner",
                        help="Administrative principal configured on the service")
    parser.add_argument("--api-version", default="v1")
    parser.add_argument("--caller-header", default="X-Caller-Id")
    parser.add_argument("--timeout", type=float, default=5.0)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    with httpx.Client(base_url=args.base_url, timeout=args.timeout) as client:
        try:
            winner = run_session(
                client,
                args.authority,
                DEFAULT_VOTERS,
                DEFAULT_PROPOSALS,
                DEFAULT_BALLOTS,
                api_prefix=f"/api/{args.api_version}",
                caller_header=args.caller_header,
            )
        except (ReplayError, httpx.HTTPError) as e:
            logger.error(f"Replay failed: {e}")
            sys.exit(1)

    print(f"Winning proposal: {winner}")


if __name__ == "__main__":
    main()
