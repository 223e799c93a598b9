"""One Monokai color theme for Stickies.

Components import these constants and interpolate them into their CSS and
rich Text styles, so the palette is defined in one place.
"""

from rich.theme import Theme


# ============================================================================
# BASE COLORS
# ============================================================================

BACKGROUND = "#272822"  # Main application background (dark charcoal)
FOREGROUND = "#F8F8F2"  # Primary text color (off-white)
SELECTION = "#49483E"   # Selected row background
COMMENT = "#75715E"     # Secondary/dimmed text
BORDER = "#3E3D32"      # Borders and dividers


# ============================================================================
# ACCENT COLORS
# ============================================================================
# Mode accents mark which partition a task belongs to; drag accents mark the
# grabbed task and the current drop target.

PERSONAL_COLOR = "#66D9EF"      # Cyan
PROFESSIONAL_COLOR = "#A6E22E"  # Green

DRAG_COLOR = "#F3C300"          # Grabbed task
DROP_TARGET_COLOR = "#AE81FF"   # Sibling the task will be moved to
NEST_ZONE_COLOR = "#FD971F"     # Nest zone the task will be dropped into
MARK_COLOR = "#F92672"          # Marked for a bulk action

PRIORITY_COLORS = {
    "high": "#F92672",
    "medium": "#E6DB74",
    "low": COMMENT,
}

COMPLETE_COLOR = COMMENT


# ============================================================================
# RICH THEME OBJECT
# ============================================================================

ONE_MONOKAI_THEME = Theme({
    "foreground": FOREGROUND,
    "selection": f"on {SELECTION}",
    "personal": PERSONAL_COLOR,
    "professional": PROFESSIONAL_COLOR,
    "complete": COMPLETE_COLOR,
    "drag": DRAG_COLOR,
    "nest_zone": NEST_ZONE_COLOR,
})


def get_mode_color(mode: str) -> str:
    """Get the accent color for a task mode.

    Args:
        mode: Task mode value ("personal" or "professional")

    Returns:
        Hex color string
    """
    if mode == "professional":
        return PROFESSIONAL_COLOR
    return PERSONAL_COLOR


def get_priority_color(priority: str) -> str:
    """Get the marker color for a task priority."""
    return PRIORITY_COLORS.get(priority, COMMENT)
