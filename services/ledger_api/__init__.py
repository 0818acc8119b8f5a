"""
HTTP service for the voting ledger.

- config: pydantic-settings configuration
- models: request/response models
- publisher: RabbitMQ forwarding of ledger events
- main: FastAPI application
- replay: session replay CLI
"""

__version__ = '1.0.0'
