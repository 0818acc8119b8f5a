"""Pydantic models for request/response validation."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, validator

from voting_ledger import Proposal, Voter, WorkflowPhase


class EnrollRequest(BaseModel):
    """Voter enrollment request model."""

    subject: str = Field(..., description="Principal to enroll as a voter")

    @validator("subject")
    def validate_subject(cls, v):
        """Validate subject is not blank."""
        if not v or not v.strip():
            raise ValueError("Subject cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {"subject": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"}
        }


class ProposalRequest(BaseModel):
    """Proposal submission request model.

    The description is passed through untouched; the ledger itself rejects
    empty descriptions so that the rejection carries its own message.
    """

    description: str = Field(..., description="Proposal text")

    class Config:
        json_schema_extra = {"example": {"description": "Build a bike lane"}}


class VoteRequest(BaseModel):
    """Ballot submission request model."""

    proposal_id: int = Field(..., description="Identifier of the chosen proposal (0 = blank)")

    class Config:
        json_schema_extra = {"example": {"proposal_id": 1}}


class VoterResponse(BaseModel):
    """Voter record response model."""

    subject: str
    is_registered: bool
    has_voted: bool
    voted_proposal_id: int

    @classmethod
    def from_record(cls, subject: str, voter: Voter) -> "VoterResponse":
        return cls(subject=subject, **voter.to_dict())


class ProposalResponse(BaseModel):
    """Proposal record response model."""

    proposal_id: int
    description: str
    vote_count: int

    @classmethod
    def from_record(cls, proposal_id: int, proposal: Proposal) -> "ProposalResponse":
        return cls(proposal_id=proposal_id, **proposal.to_dict())


class PhaseResponse(BaseModel):
    """Current workflow phase."""

    phase: int = Field(..., description="Phase ordinal (0-5)")
    label: str = Field(..., description="Phase name, e.g. 'VotingSessionStarted'")

    @classmethod
    def from_phase(cls, phase: WorkflowPhase) -> "PhaseResponse":
        return cls(phase=int(phase), label=phase.label)


class PhaseChangeResponse(BaseModel):
    """Phase transition response model."""

    previous: PhaseResponse
    current: PhaseResponse


class TallyResponse(BaseModel):
    """Tally result response model."""

    winning_proposal_id: int
    phase: PhaseResponse


class WinnerResponse(BaseModel):
    """Cached winner; meaningful only once the phase is VotesTallied."""

    winning_proposal_id: int
    tallied: bool


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "services": {"ledger": "ready", "rabbitmq": "disabled"},
                "timestamp": "2024-01-15T10:30:00"
            }
        }


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Unauthorized",
                "message": "You're not a voter",
                "details": {}
            }
        }
