"""Prompt templates sent to the text-generation provider."""

ANALYSIS_SYSTEM_PROMPT = (
    "You are an emotional and thematic analysis expert for journal entries. "
    "You always answer with a single JSON object and nothing else."
)

INSIGHT_SYSTEM_PROMPT = (
    "You are a personal journaling assistant trained to detect meaningful psychological "
    "and emotional patterns in recurring journal themes."
)


def build_analysis_prompt(text: str) -> str:
    return f"""Analyze the journal entry below and identify its emotions and themes.

Return ONLY a JSON object of this exact shape:
{{
  "emotions": [{{"name": "Happy", "score": 80}}],
  "themes": ["Work"]
}}

Rules:
- "emotions": 1 to 3 objects; "name" is a short, specific emotion label; "score" is its intensity from 0 to 100.
- "themes": 1 to 3 short theme labels in Title Case (for example Work, Relationships, Health, Creativity, Learning).
- No commentary, no markdown.

Journal entry:
\"\"\"
{text}
\"\"\"
"""


def build_insight_prompt(theme_summary: str) -> str:
    return f"""You will be given a list of recurring themes with the number of times each theme appeared across a person's journal entries: {theme_summary or "(no themes yet)"}

Using this limited but insightful data, generate 2 to 3 personalized insights that reflect potential life patterns, inner conflicts, emotional states, or growth opportunities.

Each insight should feel emotionally intelligent and reflective, like something a thoughtful therapist or coach might observe. Don't just repeat the themes: interpret them and make thoughtful guesses about the "why" behind the pattern.

For each insight, return:

"title": A compelling, human-readable title (e.g. "Driven but Drained" or "Relationships on the Back Burner")

"description": A short paragraph (2-4 sentences) explaining what this pattern could reveal about the person's mindset, values, habits, or emotional state.

"suggestedColor": A color capturing the emotional tone ("blue" = introspection, "red" = urgency/intensity, "green" = growth/healing, "yellow" = optimism/curiosity, "purple" = complexity/transformation)

"derivedEntryCount": Your best guess, as a whole number, at how many journal entries contributed to this pattern.

Return ONLY a valid JSON array, like this:
[
  {{
    "title": "Driven but Drained",
    "description": "There is a strong emphasis on work and projects, often accompanied by high stress. This suggests an intense focus on achievement, possibly at the expense of well-being.",
    "suggestedColor": "red",
    "derivedEntryCount": 22
  }}
]
"""
