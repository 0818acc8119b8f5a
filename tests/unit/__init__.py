"""Unit tests for the voting ledger core.

Each module covers one component (workflow, registries, ballot box, tally,
events) plus full-session scenarios against the VotingLedger aggregate.
"""
