from models import RECOGNIZED_CATEGORIES

# System prompt for task suggestions
# Categories: the client's recognized set, widened with focus and planning
SUGGESTION_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates engaging tasks to combat boredom. "
    "Always respond with valid JSON arrays only."
)

SUGGESTION_PROMPT = """Generate 3 engaging and personalized tasks to help combat boredom. Consider the following:

Mood: {mood}
Energy Level: {energy_level}/10
Available Time: {available_time} minutes
{schedule_notes}
Generate tasks that are:
- Appropriate for the given mood and energy level
- Realistic for the available time
- Engaging and varied (mix of physical, mental, creative, social activities)
- Specific and actionable
- Fun and interesting

Format each task as a JSON object with:
- title: A catchy, specific task title
- description: A brief explanation of what to do
- category: One of [{categories}]
- priority: One of [low, medium, high] based on energy level and mood
- estimatedTime: Estimated minutes to complete (integer, within the available time)

Return only a JSON array of exactly 3 task objects, no other text."""


def build_suggestion_prompt(
    mood: str,
    energy_level: int,
    available_time: int,
    schedule_notes: str | None = None
) -> str:
    """Fill the suggestion prompt with the user's current state."""
    notes = f"Schedule Notes: {schedule_notes.strip()}\n" if schedule_notes and schedule_notes.strip() else ""
    return SUGGESTION_PROMPT.format(
        mood=mood,
        energy_level=energy_level,
        available_time=available_time,
        schedule_notes=notes,
        categories=", ".join(RECOGNIZED_CATEGORIES),
    )
