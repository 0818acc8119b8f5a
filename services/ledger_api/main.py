"""
FastAPI application exposing the voting ledger.

The caller principal of every operation is taken from the header named by
settings.CALLER_HEADER, which the authenticating proxy in front of this
service is trusted to set. Endpoints are coroutines that call the
synchronous ledger without awaiting in between, so state-mutating calls are
serialized by the event loop.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, List

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from voting_ledger import (
    EmptyProposal,
    LedgerError,
    ProposalNotFound,
    Unauthorized,
    VotingLedger,
    WorkflowPhase,
)

from .config import settings
from .models import (
    EnrollRequest,
    ErrorResponse,
    HealthResponse,
    PhaseChangeResponse,
    PhaseResponse,
    ProposalRequest,
    ProposalResponse,
    TallyResponse,
    VoteRequest,
    VoterResponse,
    WinnerResponse,
)
from .publisher import publisher

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
ledger_operations = Counter(
    "ledger_operations_total",
    "Total number of committed ledger operations",
    ["operation"]
)
ledger_rejections = Counter(
    "ledger_rejections_total",
    "Total number of rejected ledger operations",
    ["operation", "error_type"]
)
votes_cast = Counter(
    "ledger_votes_cast_total",
    "Total number of ballots recorded"
)
workflow_phase = Gauge(
    "ledger_workflow_phase",
    "Current workflow phase ordinal (0-5)"
)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

API_PREFIX = f"/api/{settings.API_VERSION}"

# Rejections not listed here are workflow or duplicate conflicts
ERROR_STATUS = (
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (ProposalNotFound, status.HTTP_404_NOT_FOUND),
    (EmptyProposal, status.HTTP_400_BAD_REQUEST),
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Empty proposal"},
    401: {"description": "Missing caller identity"},
    403: {"model": ErrorResponse, "description": "Caller not allowed"},
    409: {"model": ErrorResponse, "description": "Wrong workflow phase or duplicate"},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    try:
        app.state.ledger = VotingLedger(
            authority=settings.AUTHORITY,
            genesis_description=settings.GENESIS_DESCRIPTION,
        )
        workflow_phase.set(int(app.state.ledger.current_phase()))

        if settings.EVENTS_PUBLISH_ENABLED:
            await publisher.initialize()

        logger.info(f"{settings.SERVICE_NAME} started successfully")

    except Exception as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    if publisher.initialized:
        await publisher.close()
    logger.info(f"{settings.SERVICE_NAME} shut down successfully")


# Create FastAPI app
app = FastAPI(
    title="Voting Ledger API",
    description="Permissioned voting sessions: enrollment, proposals, ballots and tally",
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Translate a ledger rejection into an ErrorResponse."""
    status_code = status.HTTP_409_CONFLICT
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break

    operation = get_operation(request)
    ledger_rejections.labels(operation=operation, error_type=exc.code).inc()
    logger.warning(
        f"Rejected {operation} from {request.headers.get(settings.CALLER_HEADER)}: "
        f"[{exc.code}] {exc.message}"
    )

    body = ErrorResponse(error=exc.code, message=exc.message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def get_ledger(request: Request) -> VotingLedger:
    return request.app.state.ledger


def get_caller(request: Request) -> str:
    """IdentityContext: the principal authenticated upstream."""
    caller = request.headers.get(settings.CALLER_HEADER, "").strip()
    if not caller:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {settings.CALLER_HEADER} header"
        )
    return caller


def get_operation(request: Request) -> str:
    """Name of the matched endpoint; the operation label of both ledger counters."""
    return getattr(request.scope.get("endpoint"), "__name__", "unknown")


async def commit(ledger: VotingLedger, operation: str, call: Callable[..., Any], *args) -> Any:
    """
    Run one state-changing ledger call, then record and publish its events.

    Rejections propagate to ledger_error_handler untouched.
    """
    offset = len(ledger.events)
    result = call(*args)

    ledger_operations.labels(operation=operation).inc()
    workflow_phase.set(int(ledger.current_phase()))

    if settings.EVENTS_PUBLISH_ENABLED:
        for event in ledger.events.since(offset):
            await publisher.publish_event(event)

    return result


async def change_phase(ledger: VotingLedger, operation: str, call: Callable[[str], WorkflowPhase],
                       caller: str) -> PhaseChangeResponse:
    current = await commit(ledger, operation, call, caller)
    return PhaseChangeResponse(
        previous=PhaseResponse.from_phase(WorkflowPhase(current - 1)),
        current=PhaseResponse.from_phase(current),
    )


# ═══════════════════════════════════════════════════════════════════
# VOTERS
# ═══════════════════════════════════════════════════════════════════

@app.post(
    f"{API_PREFIX}/voters",
    response_model=VoterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def enroll_voter(
    body: EnrollRequest,
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> VoterResponse:
    """
    Enroll a voter. Authority only, while voters are being registered.

    - **subject**: Principal to enroll
    """
    voter = await commit(ledger, operation, ledger.enroll, caller, body.subject)
    return VoterResponse.from_record(body.subject, voter)


@app.get(
    f"{API_PREFIX}/voters/{{subject}}",
    response_model=VoterResponse,
    responses=ERROR_RESPONSES
)
async def get_voter(
    subject: str,
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
) -> VoterResponse:
    """Get the registration and ballot status of a principal. Voters only."""
    return VoterResponse.from_record(subject, ledger.get_voter(caller, subject))


# ═══════════════════════════════════════════════════════════════════
# WORKFLOW
# ═══════════════════════════════════════════════════════════════════

@app.get(f"{API_PREFIX}/workflow", response_model=PhaseResponse)
async def get_workflow_phase(ledger: VotingLedger = Depends(get_ledger)) -> PhaseResponse:
    """Get the current workflow phase."""
    return PhaseResponse.from_phase(ledger.current_phase())


@app.post(
    f"{API_PREFIX}/workflow/start-proposals-registering",
    response_model=PhaseChangeResponse,
    responses=ERROR_RESPONSES
)
async def start_proposals_registering(
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> PhaseChangeResponse:
    """Close voter registration and open proposal registration."""
    return await change_phase(
        ledger, operation, ledger.start_proposals_registering, caller
    )


@app.post(
    f"{API_PREFIX}/workflow/end-proposals-registering",
    response_model=PhaseChangeResponse,
    responses=ERROR_RESPONSES
)
async def end_proposals_registering(
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> PhaseChangeResponse:
    """Close proposal registration."""
    return await change_phase(
        ledger, operation, ledger.end_proposals_registering, caller
    )


@app.post(
    f"{API_PREFIX}/workflow/start-voting-session",
    response_model=PhaseChangeResponse,
    responses=ERROR_RESPONSES
)
async def start_voting_session(
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> PhaseChangeResponse:
    """Open the voting session."""
    return await change_phase(
        ledger, operation, ledger.start_voting_session, caller
    )


@app.post(
    f"{API_PREFIX}/workflow/end-voting-session",
    response_model=PhaseChangeResponse,
    responses=ERROR_RESPONSES
)
async def end_voting_session(
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> PhaseChangeResponse:
    """Close the voting session."""
    return await change_phase(
        ledger, operation, ledger.end_voting_session, caller
    )


# ═══════════════════════════════════════════════════════════════════
# PROPOSALS
# ═══════════════════════════════════════════════════════════════════

@app.post(
    f"{API_PREFIX}/proposals",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def add_proposal(
    body: ProposalRequest,
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> ProposalResponse:
    """
    Register a proposal. Voters only, while proposal registration is open.

    - **description**: Proposal text (must not be empty)
    """
    proposal_id = await commit(ledger, operation, ledger.add_proposal, caller, body.description)
    return ProposalResponse.from_record(proposal_id, ledger.get_one_proposal(caller, proposal_id))


@app.get(
    f"{API_PREFIX}/proposals",
    response_model=List[ProposalResponse],
    responses=ERROR_RESPONSES
)
async def get_proposals(
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
) -> List[ProposalResponse]:
    """List every proposal, the reserved blank proposal 0 included. Voters only."""
    return [
        ProposalResponse.from_record(proposal_id, proposal)
        for proposal_id, proposal in enumerate(ledger.get_proposals(caller))
    ]


@app.get(
    f"{API_PREFIX}/proposals/{{proposal_id}}",
    response_model=ProposalResponse,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Proposal not found"}}
)
async def get_one_proposal(
    proposal_id: int,
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
) -> ProposalResponse:
    """Get one proposal. Voters only."""
    return ProposalResponse.from_record(proposal_id, ledger.get_one_proposal(caller, proposal_id))


# ═══════════════════════════════════════════════════════════════════
# BALLOTS & TALLY
# ═══════════════════════════════════════════════════════════════════

@app.post(
    f"{API_PREFIX}/votes",
    response_model=VoterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **ERROR_RESPONSES,
        404: {"model": ErrorResponse, "description": "Proposal not found"},
        429: {"description": "Rate limit exceeded"},
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def cast_vote(
    request: Request,
    body: VoteRequest,
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> VoterResponse:
    """
    Cast the caller's single ballot while the voting session is open.

    - **proposal_id**: Chosen proposal (0 is the blank/abstain proposal)
    """
    voter = await commit(ledger, operation, ledger.vote, caller, body.proposal_id)
    votes_cast.inc()
    return VoterResponse.from_record(caller, voter)


@app.post(
    f"{API_PREFIX}/tally",
    response_model=TallyResponse,
    responses=ERROR_RESPONSES
)
async def tally_votes(
    caller: str = Depends(get_caller),
    ledger: VotingLedger = Depends(get_ledger),
    operation: str = Depends(get_operation),
) -> TallyResponse:
    """Compute the winner and close the session. Authority only, once voting has ended."""
    winner = await commit(ledger, operation, ledger.tally, caller)
    return TallyResponse(
        winning_proposal_id=winner,
        phase=PhaseResponse.from_phase(ledger.current_phase()),
    )


@app.get(f"{API_PREFIX}/winner", response_model=WinnerResponse)
async def get_winner(ledger: VotingLedger = Depends(get_ledger)) -> WinnerResponse:
    """Get the cached winning proposal identifier (0 until votes are tallied)."""
    return WinnerResponse(
        winning_proposal_id=ledger.winning_proposal_id(),
        tallied=ledger.current_phase() is WorkflowPhase.VOTES_TALLIED,
    )


# ═══════════════════════════════════════════════════════════════════
# OPERATIONS
# ═══════════════════════════════════════════════════════════════════

@app.get(
    f"{API_PREFIX}/health",
    response_model=HealthResponse,
    responses={
        503: {"model": HealthResponse, "description": "Service unhealthy"}
    }
)
async def health_check(request: Request) -> HealthResponse:
    """
    Check health of the service and its dependencies.

    RabbitMQ is only checked when event publishing is enabled.
    """
    services = {
        "ledger": "ready" if getattr(request.app.state, "ledger", None) else "missing"
    }

    if settings.EVENTS_PUBLISH_ENABLED:
        try:
            rabbitmq_healthy = await publisher.check_health()
            services["rabbitmq"] = "connected" if rabbitmq_healthy else "disconnected"
        except Exception as e:
            logger.error(f"RabbitMQ health check error: {e}")
            services["rabbitmq"] = "error"
    else:
        services["rabbitmq"] = "disabled"

    all_healthy = all(
        state in ("ready", "connected", "disabled") for state in services.values()
    )

    overall_status = "healthy" if all_healthy else "unhealthy"
    status_code = status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    response = HealthResponse(
        status=overall_status,
        services=services,
        timestamp=datetime.utcnow()
    )

    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json")
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "voters": f"{API_PREFIX}/voters",
            "workflow": f"{API_PREFIX}/workflow",
            "proposals": f"{API_PREFIX}/proposals",
            "votes": f"{API_PREFIX}/votes",
            "tally": f"{API_PREFIX}/tally",
            "winner": f"{API_PREFIX}/winner",
            "health": f"{API_PREFIX}/health",
            "metrics": "/metrics"
        }
    }


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "ledger_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )


if __name__ == "__main__":
    run()
