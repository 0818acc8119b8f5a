"""Integration tests for the voting ledger service.

The API runs in-process through FastAPI's TestClient and RabbitMQ is
mocked, so no external services are required.
"""
