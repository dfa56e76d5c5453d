"""Deterministic keyword analysis used when no text-generation provider answers.

Both axes are described by the same declarative catalog shape,
``{category: [(keyword, weight), ...]}``, and scored by one function.
"""
from __future__ import annotations

import re
from collections import Counter

from app.schemas import Analysis, EmotionScore

Catalog = dict[str, list[tuple[str, int]]]

TOP_N = 3
NEUTRAL_EMOTION = "Neutral"
NEUTRAL_SCORE = 50
GENERAL_THEME = "General"

_WORD_RE = re.compile(r"[a-z]+(?:'[a-z]+)?")

EMOTION_CATALOG: Catalog = {
    "Happy": [("happy", 3), ("happiness", 3), ("joy", 3), ("joyful", 3), ("glad", 2), ("great", 1),
              ("wonderful", 2), ("smile", 1), ("smiled", 1), ("fun", 1), ("delighted", 3), ("cheerful", 2)],
    "Excited": [("excited", 3), ("exciting", 3), ("thrilled", 3), ("can't", 1), ("eager", 2),
                ("pumped", 2), ("finally", 1), ("amazing", 2)],
    "Grateful": [("grateful", 3), ("thankful", 3), ("thanks", 1), ("appreciate", 2), ("appreciated", 2),
                 ("blessed", 2), ("lucky", 1)],
    "Calm": [("calm", 3), ("peaceful", 3), ("relaxed", 3), ("relaxing", 2), ("quiet", 1), ("rested", 2),
             ("content", 1)],
    "Hopeful": [("hope", 3), ("hopeful", 3), ("optimistic", 3), ("looking", 1), ("forward", 1), ("better", 1)],
    "Sad": [("sad", 3), ("unhappy", 3), ("cry", 3), ("cried", 3), ("crying", 3), ("down", 1), ("miss", 2),
            ("missed", 1), ("loss", 2), ("lost", 1), ("hurt", 2), ("disappointed", 3), ("disappointing", 2)],
    "Anxious": [("anxious", 3), ("anxiety", 3), ("worried", 3), ("worry", 3), ("nervous", 3), ("stress", 2),
                ("stressed", 3), ("overwhelmed", 3), ("afraid", 2), ("scared", 2), ("panic", 3), ("deadline", 1)],
    "Angry": [("angry", 3), ("anger", 3), ("mad", 2), ("furious", 3), ("hate", 2), ("annoyed", 2),
              ("unfair", 1)],
    "Frustrated": [("frustrated", 3), ("frustrating", 3), ("stuck", 2), ("annoying", 2), ("again", 1),
                   ("failed", 2), ("broken", 1)],
    "Tired": [("tired", 3), ("exhausted", 3), ("drained", 3), ("sleepy", 2), ("burnout", 3), ("burned", 2),
              ("fatigue", 3)],
    "Lonely": [("lonely", 3), ("alone", 2), ("isolated", 3), ("nobody", 2)],
    "Reflective": [("reflect", 3), ("reflecting", 3), ("realized", 2), ("realize", 2), ("wonder", 1),
                   ("thinking", 1), ("thought", 1), ("remember", 1), ("lesson", 2)],
    "Curious": [("curious", 3), ("interesting", 2), ("explore", 2), ("exploring", 2), ("discover", 2),
                ("question", 1), ("why", 1)],
    "Motivated": [("motivated", 3), ("determined", 3), ("focused", 2), ("productive", 2), ("goal", 1),
                  ("goals", 1), ("ready", 1), ("achieve", 2), ("accomplished", 2)],
    "Proud": [("proud", 3), ("pride", 2), ("achievement", 2), ("succeeded", 2), ("success", 2), ("won", 2)],
}

THEME_CATALOG: Catalog = {
    "Work": [("work", 3), ("working", 3), ("worked", 2), ("job", 3), ("jobs", 2), ("career", 3), ("office", 2),
             ("boss", 2), ("meeting", 2), ("meetings", 2), ("project", 2), ("colleague", 2), ("colleagues", 2),
             ("deadline", 2), ("promotion", 3), ("client", 1), ("interview", 2)],
    "Relationships": [("relationship", 3), ("partner", 3), ("boyfriend", 3), ("girlfriend", 3), ("husband", 3),
                      ("wife", 3), ("love", 2), ("date", 1), ("friend", 3), ("friends", 3), ("friendship", 3)],
    "Family": [("family", 3), ("mom", 3), ("dad", 3), ("mother", 3), ("father", 3), ("parents", 3),
               ("sister", 2), ("brother", 2), ("kids", 2), ("children", 2), ("son", 2), ("daughter", 2)],
    "Health": [("health", 3), ("healthy", 2), ("sick", 3), ("doctor", 3), ("exercise", 3), ("workout", 3),
               ("gym", 3), ("run", 1), ("running", 2), ("sleep", 2), ("diet", 2), ("ill", 2), ("pain", 2)],
    "Learning": [("learn", 3), ("learning", 3), ("learned", 3), ("study", 3), ("studying", 3), ("class", 2),
                 ("course", 2), ("book", 2), ("reading", 2), ("school", 2), ("exam", 2), ("skill", 2)],
    "Personal Growth": [("growth", 3), ("grow", 2), ("improve", 2), ("improving", 2), ("habit", 2),
                        ("habits", 2), ("mindset", 3), ("change", 1), ("myself", 1), ("progress", 2)],
    "Goals": [("goal", 3), ("goals", 3), ("plan", 2), ("plans", 2), ("planning", 2), ("resolution", 3),
              ("target", 2), ("future", 1), ("dream", 2)],
    "Creativity": [("creative", 3), ("create", 2), ("art", 3), ("write", 2), ("writing", 2), ("music", 3),
                   ("paint", 3), ("painting", 3), ("design", 2), ("idea", 2), ("ideas", 2)],
    "Finances": [("money", 3), ("budget", 3), ("rent", 2), ("bills", 3), ("salary", 3), ("savings", 3),
                 ("debt", 3), ("expensive", 2), ("pay", 1)],
    "Time Management": [("busy", 2), ("schedule", 3), ("time", 1), ("late", 1), ("procrastinate", 3),
                        ("procrastinating", 3), ("deadline", 1), ("balance", 2)],
    "Self-care": [("rest", 2), ("relax", 2), ("meditate", 3), ("meditation", 3), ("journal", 1),
                  ("walk", 1), ("break", 1), ("vacation", 3), ("weekend", 1)],
}


def tokenize(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def score_categories(words: Counter, catalog: Catalog, top_n: int = TOP_N) -> list[tuple[str, int]]:
    """Return up to ``top_n`` (category, raw score) pairs with a nonzero score.

    Raw score is the sum of ``weight * occurrences`` over a category's
    keywords. Equal scores keep catalog order.
    """
    scored = []
    for category, keywords in catalog.items():
        total = sum(weight * words[keyword] for keyword, weight in keywords)
        if total > 0:
            scored.append((category, total))
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:top_n]


def rescale(scored: list[tuple[str, int]]) -> list[tuple[str, int]]:
    """Map raw scores linearly onto 1..100, the strongest category at 100."""
    if not scored:
        return []
    top = scored[0][1]
    return [(name, max(1, min(100, round(raw * 100 / top)))) for name, raw in scored]


class KeywordAnalyzer:
    def __init__(self, emotion_catalog: Catalog | None = None, theme_catalog: Catalog | None = None) -> None:
        self.emotion_catalog = emotion_catalog or EMOTION_CATALOG
        self.theme_catalog = theme_catalog or THEME_CATALOG

    def analyze(self, text: str) -> Analysis:
        words = Counter(tokenize(text or ""))

        emotions = [
            EmotionScore(name=name, score=score)
            for name, score in rescale(score_categories(words, self.emotion_catalog))
        ]
        themes = [name for name, _ in score_categories(words, self.theme_catalog)]

        if not emotions:
            emotions = [EmotionScore(name=NEUTRAL_EMOTION, score=NEUTRAL_SCORE)]
        if not themes:
            themes = [GENERAL_THEME]
        return Analysis(emotions=emotions, themes=themes)
