THEME_SYSTEM_PROMPT: str = "You are a JSON-only analysis engine for a journaling app. Respond only with JSON."

THEME_ANALYSIS_PROMPT: str = (
    "Analyze the following journal entries and identify deep, recurring psychological themes "
    "that define this person's mental patterns, values, identity, or core concerns.\n\n"
    "Requirements:\n"
    "- Only include themes that appear across several different entries; ignore one-off mentions.\n"
    "- Prefer emotionally significant patterns (values, fears, desires, worldview) over activities or events.\n"
    "- Score each theme's prominence from 1 to 100 by frequency and emotional significance.\n"
    "- When a pattern matches one of the themes already tracked below, reuse its title exactly.\n\n"
    "Good titles look like: \"Fear of creative stagnation\", \"Craving for authentic connection\", "
    "\"Struggle with work-life balance\", \"Anxiety about future uncertainty\".\n\n"
    "For each theme provide:\n"
    "1. title: a clear, specific title of 4-8 words\n"
    "2. summary: 2-3 sentences, in second person, on what the theme reveals\n"
    "3. quotes: 1-2 verbatim quotes from the entries\n"
    "4. prominence_score: an integer from 1 to 100\n\n"
    "Return only JSON of the form:\n"
    "{{\n"
    "  \"themes\": [\n"
    "    {{\n"
    "      \"title\": \"Fear of Creative Stagnation\",\n"
    "      \"summary\": \"You keep returning to the worry that you are not growing creatively...\",\n"
    "      \"quotes\": [\"I feel like I'm just going through the motions...\"],\n"
    "      \"prominence_score\": 85\n"
    "    }}\n"
    "  ]\n"
    "}}\n\n"
    "Return between {min_themes} and {max_themes} themes; the top {retained_themes} by prominence are kept.\n\n"
    "Themes already tracked:\n"
    "{tracked_themes}\n\n"
    "Journal entries to analyze:\n\n"
    "{entries_text}"
)

ENTRY_LINE_TEMPLATE: str = "[{entry_date}] {content}"

MIN_THEMES: int = 2
MAX_THEMES: int = 15

TRACKED_THEME_LINE_TEMPLATE: str = "- {title}"
NO_TRACKED_THEMES: str = "(none yet)"
