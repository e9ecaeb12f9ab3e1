"""System prompt and user-facing fallback messages for the agent."""

from datetime import UTC, datetime

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant.

## Current Date & Time
Today is **{current_date}** ({current_day_of_week}). The current time is **{current_time} UTC**.

## Tools
Ask yourself "What tools can I use?" before answering.

- Do not simulate tool calls, use them directly.
- Do not paste full tool responses back to the user; keep answers short and concise.
- If asked about the current weather, use the get_weather tool. Use find_city
  when you need the coordinates or country of a place.
- Whenever a user message contains a URL, you MUST call the scrape_link tool
  with that URL before answering.
- To shorten a long text, use summarize_text.
- The user keeps a notes index. Use add_note_to_index to save a note title,
  get_all_notes to list them, and add_notes_index_field /
  get_notes_index_fields for other named fields such as categories.
- If a tool returns an error, explain briefly what went wrong instead of
  retrying the same call over and over.

## Formatting
Use markdown formatting for better readability.
"""

# ── Fallback messages (shown to the user verbatim) ──────────────────

RECURSION_LIMIT_MESSAGE = (
    "I'm having trouble processing your request. The tool calls are taking too long."
)

BACKEND_UNREACHABLE_TEMPLATE = (
    "I'm unable to connect to the Ollama server at {host}. "
    "Please make sure the Ollama service is running and accessible."
)

BACKEND_ERROR_TEMPLATE = (
    "I'm having trouble connecting to the AI model. Error: {error}. "
    'Please ensure the Ollama server is running at {host} with the model "{model}" loaded.'
)


def get_system_prompt() -> str:
    """Return the system prompt with the current date/time."""
    now = datetime.now(UTC)
    return SYSTEM_PROMPT_TEMPLATE.format(
        current_date=now.strftime("%A, %d %B %Y"),
        current_day_of_week=now.strftime("%A"),
        current_time=now.strftime("%H:%M"),
    )
