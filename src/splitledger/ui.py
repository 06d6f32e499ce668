"""Interactive UI components for the command line."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="gro" matches "groceries"
        query="fdd" matches "food & drink"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class CategoryCompleter(Completer):
    """Fuzzy search completer for expense categories."""

    def __init__(self, categories: list[str]):
        """Initialize the completer with available categories."""
        self.categories = categories

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for category in self.categories:
            if not query or fuzzy_match(query, category.lower()):
                yield Completion(
                    text=category,
                    start_position=-len(document.text),
                    display=category,
                )


def select_category_interactive(
    categories: list[str], expense_title: str, default: str | None = None
) -> str | None:
    """
    Interactive category selection with fuzzy search.

    Args:
        categories: Available categories
        expense_title: Title of the expense being categorized
        default: Optional pre-filled category

    Returns:
        Selected category, or None to leave the expense uncategorized
    """
    print(f"\n📝 Categorize: {expense_title}")
    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = CategoryCompleter(categories)
    session: PromptSession[str] = PromptSession(completer=completer)
    default_text = default or ""

    try:
        while True:
            result = session.prompt(
                "Category: ",
                default=default_text,
                complete_while_typing=True,
            )

            if not result:
                return None

            if result in categories:
                logger.info(f"User selected category: {result}")
                return result

            print("❌ Unknown category. Please select from the list or press Tab to complete.")
            default_text = ""

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def confirm(message: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
