"""
Idempotent Messaging — send-message endpoint behind idemgate.

Structure:
    domain.py  — Request model and message types
    service.py — Message service (the executor) with a fake delivery channel
    app.py     — FastAPI app wired from IdempotencySettings
    main.py    — Example runner (retries, concurrency, abandoned claims)

Run:
    uv run python -m examples.messaging.main
    uv run uvicorn examples.messaging.app:create_app --factory
"""
