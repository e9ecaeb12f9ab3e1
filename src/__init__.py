"""Tool-calling chat agent on top of a local Ollama server.

Architecture Overview
=====================

A user turn goes through an explicit loop (``src/agent.py``):

1. **health probe** — ``GET /api/tags`` on the Ollama server.  If it does
   not answer, the user gets a message naming the host straight away.
2. **chat** — ``POST /api/chat`` with the conversation and the tool
   catalog, retried with linear backoff on transport errors.
3. **tools** — if the model asked for tools, ``ToolDispatcher`` runs them
   (each isolated and time-boxed) and the results go back to the model.

The loop ends on a plain answer or when the round limit is passed.

Key Design Decisions
--------------------
- **Stateless core**: the caller owns the conversation history and passes
  it in on every turn; ``Agent.run`` only returns the new transcript.
- **Tools**: LangChain ``@tool`` functions.  Their pydantic argument
  schemas validate the model's arguments and double as the JSON-schema
  catalog sent to Ollama.
- **Injected collaborators**: backend client, registry and dispatcher are
  passed to ``Agent`` rather than read from globals, so tests run against
  fakes.

Package Structure
-----------------
- ``src/agent.py`` — the agent loop
- ``src/dispatcher.py`` — tool execution and result messages
- ``src/messages.py`` — message / tool-call models and wire format
- ``src/errors.py`` — exception hierarchy
- ``src/config.py`` — configuration from environment variables
- ``src/prompts.py`` — system prompt and fallback messages
- ``src/server.py`` — FastAPI application
- ``src/main.py`` — CLI chat interface
- ``src/services/`` — HTTP clients (Ollama, Open-Meteo), cache, metrics
- ``src/tools/`` — tool registry and built-in tools
- ``src/api/`` — FastAPI routes and Pydantic schemas
"""
