"""DataRoom Assistant - document Q&A and file management for a remote data room.

Combines FastAPI for HTTP serving, NiceGUI for the interface, httpx for the
data-room backend, Agno with Groq for general chat, and Pydantic for data
validation.

Components:
    - api: FastAPI application factory and service health
    - client: Async client for the data-room REST backend and its live stream
    - streaming: Reducer turning live-stream events into pipeline state
    - agent: LLM chat orchestration with quick replies
    - auth: Local email/password registry and session state
    - storage: Offline SQLite cache for uploaded files
    - parsing: Upload validation and file inspection
    - ui: Web interface pages
    - models: Backend request/response schemas
"""

__version__ = "0.1.0"
