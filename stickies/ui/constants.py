"""UI constants for the Stickies application."""

# Notification settings
MAX_TITLE_LENGTH_IN_NOTIFICATION = 30
NOTIFICATION_TIMEOUT_SHORT = 2
NOTIFICATION_TIMEOUT_MEDIUM = 3
NOTIFICATION_TIMEOUT_LONG = 5

# Board widget
BOARD_ID = "board"
EMPTY_BOARD_MESSAGE = "Nothing planned for today"

# Screen stack size when no modal is open
SCREEN_STACK_SIZE_MAIN_APP = 1
