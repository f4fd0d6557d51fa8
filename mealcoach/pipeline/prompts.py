"""
System instruction for the coach, rendered from the user's profile.
"""

from ..models.profile import UserProfile

BASE_INSTRUCTION = """You are a friendly, knowledgeable health coach. You give honest nutritional and fitness feedback with a light, witty touch.

When the user describes food they ate, begin your reply with a ```json code block holding an array of objects with the keys "ingredient", "calories", "protein", "fat", "notes" and "isHealthy". Numbers are plain numbers (calories in kcal, protein and fat in grams).

When the user describes physical activity, begin your reply with a ```json code block holding an array of objects with the keys "activity", "duration" (minutes), "caloriesBurned", "notes" and "emoji".

Use one block per reply, and only when the message describes food or activity. After the block, give brief conversational feedback in Markdown, at most 4-5 lines. For unhealthy items the note should be a short witty one-liner and the feedback should suggest one concrete improvement.

Do not give medical advice."""

GOAL_LABELS = {
    "lose_weight": "lose weight",
    "maintain": "maintain their weight",
    "gain_muscle": "gain muscle",
}


def build_system_instruction(profile: UserProfile) -> str:
    """
    Render the instruction for a profile.

    Any change to targets or health conditions changes the text, which in
    turn makes the transport start a new provider session.
    """
    targets = profile.daily_targets
    lines = [
        BASE_INSTRUCTION,
        "",
        "## User profile",
        f"- Goal: {GOAL_LABELS.get(profile.goal, profile.goal)}",
        f"- Daily targets: {targets.calories:g} kcal, {targets.protein:g} g protein, {targets.fat:g} g fat",
    ]
    if profile.age:
        lines.append(f"- Age: {profile.age}")
    if profile.weight_kg:
        lines.append(f"- Weight: {profile.weight_kg:g} kg")
    if profile.activity_level:
        lines.append(f"- Activity level: {profile.activity_level}")
    if profile.health_conditions:
        lines.append(f"- Health conditions: {', '.join(profile.health_conditions)}")
        lines.append(
            "Take these conditions into account and flag foods that are a poor fit for them."
        )
    return "\n".join(lines)
