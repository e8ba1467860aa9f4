"""
Full-text search helpers.

PostgreSQL does the real work with `to_tsvector` and `websearch_to_tsquery`.
The same replacements are applied to indexed text and to search terms so
that URLs and hierarchical tags such as `feed/atom` tokenize as words.

`WebSearchQuery` approximates the web-search syntax for the in-memory
stores. Whitespace-separated terms are AND-ed, `"quoted phrases"` must
appear in sequence, `-term` negates and `or` joins two alternatives.
"""
import re
from dataclasses import dataclass, field

_REPLACEMENTS = str.maketrans({"/": " ", ".": " "})
_WORD_PATTERN = re.compile(r"\w+")
_QUERY_TOKEN_PATTERN = re.compile(r'(-?)"([^"]*)"?|(\S+)')


def replace_search_characters(text: str) -> str:
    """Replace characters that would glue words together in the tokenizer."""
    return text.translate(_REPLACEMENTS)


def bookmark_search_text(title: str, description: str, tags: list[str]) -> str:
    """Build the text indexed for a bookmark."""
    return " ".join([
        title,
        replace_search_characters(description),
        replace_search_characters(" ".join(tags)),
    ])


def tokenize(text: str) -> list[str]:
    """Split text into lowercase words."""
    return [word.lower() for word in _WORD_PATTERN.findall(replace_search_characters(text))]


@dataclass
class _Clause:
    """A list of alternatives; each alternative is a phrase (list of words)."""

    alternatives: list[list[str]] = field(default_factory=list)
    negated: bool = False

    def matches(self, words: list[str]) -> bool:
        found = any(_contains_phrase(words, phrase) for phrase in self.alternatives)
        return not found if self.negated else found


def _contains_phrase(words: list[str], phrase: list[str]) -> bool:
    if not phrase:
        return True
    size = len(phrase)
    return any(words[i:i + size] == phrase for i in range(len(words) - size + 1))


class WebSearchQuery:
    """In-memory rendition of PostgreSQL's web-search query syntax."""

    def __init__(self, terms: str) -> None:
        self.clauses: list[_Clause] = []
        join_next = False
        for negation, quoted, bare in _QUERY_TOKEN_PATTERN.findall(terms):
            if bare:
                if bare.lower() == "or" and self.clauses:
                    join_next = True
                    continue
                negated = bare.startswith("-")
                phrase = tokenize(bare.lstrip("-"))
            else:
                negated = negation == "-"
                phrase = tokenize(quoted)
            if not phrase:
                continue
            if join_next and not negated:
                self.clauses[-1].alternatives.append(phrase)
            else:
                self.clauses.append(_Clause(alternatives=[phrase], negated=negated))
            join_next = False

    @property
    def is_empty(self) -> bool:
        """An empty query matches nothing, as websearch_to_tsquery('') does."""
        return not self.clauses

    def matches(self, text: str) -> bool:
        """Return True if text satisfies every clause of the query."""
        if self.is_empty:
            return False
        words = tokenize(text)
        return all(clause.matches(words) for clause in self.clauses)
