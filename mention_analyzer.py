"""
Brand mention analysis for AI platform responses.

Scans a block of AI-generated text for a brand or competitor name and
scores how prominently and how favorably it is mentioned.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union


POSITIVE_WORDS = ('best', 'top', 'leading', 'excellent', 'great', 'recommended', 'popular', 'trusted', 'reliable')
NEGATIVE_WORDS = ('alternative', 'however', 'but', 'unfortunately', 'lacking', 'limited', 'expensive')

DEFAULT_CONTEXT_WINDOW = 200
DEFAULT_MAX_CONTEXT = 1000
RANKED_LIST_MAX_CONTEXT = 200

SENTIMENT_THRESHOLD = 15

_SENTENCE_SPLIT = re.compile(r'[.!?]+')
_LIST_ITEM = re.compile(r'^\s*(\d+)[.)]\s')
_LIST_PREFIX = re.compile(r'^\s*\d+[.)]\s*')
_NUMBERED_LINE = re.compile(r'^\s*\d+[.)]')


class InvalidArgument(ValueError):
    """Raised when the analyzer is handed something that is not analyzable text."""


class ScoringMode(str, Enum):
    SENTENCE = 'sentence'
    RANKED_LIST = 'rankedList'


@dataclass(frozen=True)
class MentionAnalysis:
    mentioned: bool
    position: Optional[int] = None
    prominence_score: int = 0
    sentiment: str = 'neutral'
    sentiment_score: int = 0
    context: str = ''

    def to_dict(self, scale: str = 'percent') -> Dict[str, object]:
        """JSON envelope. ``scale='fraction'`` reports prominence as 0.0-1.0."""
        if scale == 'fraction':
            prominence = round(self.prominence_score / 100, 2)
        elif scale == 'percent':
            prominence = self.prominence_score
        else:
            raise InvalidArgument(f"Unknown prominence scale: {scale}")
        return {
            'mentioned': self.mentioned,
            'position': self.position,
            'prominence': prominence,
            'sentiment': self.sentiment,
            'sentiment_score': self.sentiment_score,
            'context': self.context,
        }


NOT_MENTIONED = MentionAnalysis(mentioned=False)


def validate_arguments(text, name) -> None:
    """Precondition check for callers at the request boundary."""
    if not isinstance(text, str):
        raise InvalidArgument(f"text must be a string, got {type(text).__name__}")
    if not isinstance(name, str):
        raise InvalidArgument(f"name must be a string, got {type(name).__name__}")
    if not name.strip():
        raise InvalidArgument("name must not be empty")


def parse_scoring_mode(mode: Union[str, ScoringMode, None]) -> ScoringMode:
    if mode is None:
        return ScoringMode.SENTENCE
    if isinstance(mode, ScoringMode):
        return mode
    try:
        return ScoringMode(mode)
    except ValueError:
        raise InvalidArgument(f"Unknown scoring mode: {mode}")


def _name_pattern(name: str) -> re.Pattern:
    # Whole-word match; lookarounds instead of \b so names ending in
    # punctuation ("C++", "Yahoo!") still match.
    return re.compile(r'(?<!\w)' + re.escape(name.strip()) + r'(?!\w)', re.IGNORECASE)


def _lexicon_score(context: str):
    """Returns (sentiment_score, prominence_delta) for a context window."""
    lower_context = context.lower()
    sentiment_score = 0
    prominence_delta = 0
    for word in POSITIVE_WORDS:
        if word in lower_context:
            sentiment_score += 10
            prominence_delta += 10
    for word in NEGATIVE_WORDS:
        if word in lower_context:
            sentiment_score -= 10
            prominence_delta -= 5
    return sentiment_score, prominence_delta


def classify_sentiment(sentiment_score: int) -> str:
    if sentiment_score > SENTIMENT_THRESHOLD:
        return 'positive'
    if sentiment_score < -SENTIMENT_THRESHOLD:
        return 'negative'
    return 'neutral'


def _clamp(score) -> int:
    return int(max(0, min(100, score)))


def split_sentences(text: str) -> List[str]:
    return _SENTENCE_SPLIT.split(text)


def sentence_position(text: str, pattern: re.Pattern) -> Optional[int]:
    """1-based index of the first sentence fragment mentioning the name."""
    for i, sentence in enumerate(split_sentences(text), 1):
        if pattern.search(sentence):
            return i
    return None


def _position_base(position: Optional[int]) -> int:
    if position == 1:
        return 40
    if position == 2:
        return 30
    if position == 3:
        return 20
    return 10


def _analyze_sentence(text: str, pattern: re.Pattern, match: re.Match,
                      context_window: int, max_context: int) -> MentionAnalysis:
    position = sentence_position(text, pattern)

    start = max(0, match.start() - context_window)
    end = min(len(text), match.end() + context_window)
    if end - start > max_context:
        # Trim both sides evenly so the mention stays in the middle
        half = max(0, (max_context - len(match.group())) // 2)
        start = max(start, match.start() - half)
        end = min(end, match.end() + half)
    context = text[start:end][:max_context]

    sentiment_score, delta = _lexicon_score(context)
    prominence = _clamp(_position_base(position) + delta)

    return MentionAnalysis(
        mentioned=True,
        position=position,
        prominence_score=prominence,
        sentiment=classify_sentiment(sentiment_score),
        sentiment_score=sentiment_score,
        context=context,
    )


def _analyze_ranked_list(text: str, pattern: re.Pattern, match: re.Match,
                         max_context: int) -> MentionAnalysis:
    lines = text.split('\n')
    position = None
    context = ''

    for i, line in enumerate(lines):
        if not pattern.search(line):
            continue
        item = _LIST_ITEM.match(line)
        if item:
            position = int(item.group(1))

        context = _LIST_PREFIX.sub('', line, count=1).strip()
        # Pull in a following description line, but not the next list item
        if i + 1 < len(lines) and not _NUMBERED_LINE.match(lines[i + 1]):
            context += ' ' + lines[i + 1].strip()
        context = context.strip()[:max_context]
        break

    if position is not None:
        prominence = max(100 - (position - 1) * 15, 40)
    else:
        relative_position = match.start() / len(text)
        prominence = round((1 - relative_position) * 100)

    sentiment_score, _ = _lexicon_score(context)

    return MentionAnalysis(
        mentioned=True,
        position=position,
        prominence_score=_clamp(prominence),
        sentiment=classify_sentiment(sentiment_score),
        sentiment_score=sentiment_score,
        context=context,
    )


def analyze(
    text: str,
    name: str,
    scoring_mode: Union[str, ScoringMode, None] = ScoringMode.SENTENCE,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
    max_context: Optional[int] = None,
) -> MentionAnalysis:
    """
    Analyze how ``name`` is mentioned in ``text``.

    Empty text or an empty name is simply "not mentioned". Non-string input
    raises InvalidArgument; request handlers should call
    validate_arguments() first and report the error to the caller.
    """
    if not isinstance(text, str) or not isinstance(name, str):
        validate_arguments(text, name)
    mode = parse_scoring_mode(scoring_mode)

    if not text or not name.strip():
        return NOT_MENTIONED

    pattern = _name_pattern(name)
    match = pattern.search(text)
    if match is None:
        return NOT_MENTIONED

    if mode is ScoringMode.RANKED_LIST:
        cap = RANKED_LIST_MAX_CONTEXT if max_context is None else max_context
        return _analyze_ranked_list(text, pattern, match, cap)

    cap = DEFAULT_MAX_CONTEXT if max_context is None else max_context
    return _analyze_sentence(text, pattern, match, context_window, cap)


def analyze_many(
    text: str,
    names: Iterable[str],
    scoring_mode: Union[str, ScoringMode, None] = ScoringMode.SENTENCE,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> Dict[str, MentionAnalysis]:
    """Analyze one response for a brand and its competitors."""
    return {
        name: analyze(text, name, scoring_mode=scoring_mode, context_window=context_window)
        for name in names
    }

