from typing import Any

from Counsel.app.config import DEFAULT_JURISDICTION


SEARCH_TOOL_NAME = "search_law_articles"


def build_system_prompt(jurisdiction: str = DEFAULT_JURISDICTION) -> str:
    return (
        f"You are a specialized legal assistant for {jurisdiction} law. "
        f"Your only job is to help users understand {jurisdiction} legal matters "
        "using the law database.\n\n"
        "MANDATORY BEHAVIOR:\n"
        "1. For ANY question about law, rights, constitution, citizenship, government "
        f"or legal matters, ALWAYS call the {SEARCH_TOOL_NAME} tool first.\n"
        "2. NEVER answer legal questions without searching the law database.\n"
        "3. ONLY base responses on the law text returned by the search.\n"
        f"4. If the question is not about {jurisdiction} law, politely redirect "
        "to legal topics.\n\n"
        "SEARCH AND RESPOND PROCESS:\n"
        f"1. When the user asks about law, call {SEARCH_TOOL_NAME}.\n"
        "2. Read the search results carefully.\n"
        "3. Synthesize them into a natural, conversational answer.\n"
        "4. Reference specific article numbers when relevant.\n"
        "5. Explain legal concepts in simple terms.\n\n"
        "NEVER list raw search results or say \"I found X articles\"."
    )


def build_search_tool() -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": SEARCH_TOOL_NAME,
            "description": (
                "MANDATORY: use this tool for ANY question about law, rights, "
                "constitution, citizenship, government or other legal matters. "
                "Searches the law database for relevant articles. You MUST call it "
                "before answering a legal question, then synthesize the results "
                "into a conversational response."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": (
                            "Search query: keywords, an article number such as "
                            "'Article 25' or '25', or a topic such as "
                            "'fundamental rights' or 'citizenship'."
                        ),
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of results to return (default: 5)",
                    },
                },
                "required": ["query"],
            },
        },
    }


def build_conversation(
    messages: list[dict[str, str]],
    system_prompt: str,
) -> list[dict[str, Any]]:
    conversation: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in messages:
        conversation.append({"role": message["role"], "content": message["content"]})
    return conversation
