# Forces
CENTER_STRENGTH = 0.1
CHARGE_STRENGTH = -400
LINK_DISTANCE = 200
BASE_COLLISION_RADIUS = 60
ALPHA_DECAY = 0.02
VELOCITY_DECAY = 0.4
ALPHA_MIN = 0.001

# Node boxes
MIN_NODE_WIDTH = 120
MAX_NODE_WIDTH = 300
NODE_HEIGHT = 80
NODE_PADDING = 16
EXPANDED_WIDTH_FACTOR = 1.5
EXPANDED_MIN_WIDTH_FACTOR = 1.2
RADIUS_PADDING = 10
EXPANDED_RADIUS_PADDING = 20

# Text
FONT_SIZE = 11
LINE_HEIGHT = 14
MAX_CHARS_PER_LINE = 30
MAX_LINES = 4
CHAR_WIDTH_RATIO = 0.6

# Zoom and viewport
MIN_SCALE = 0.1
MAX_SCALE = 5
CENTER_SCALE = 1.2
CENTER_DURATION = 800
LOCK_DELAY = 600

# Rendering timeline, milliseconds
FRAME_INTERVAL = 16
SETTLEMENT_DELAY = 500
FADE_IN_DURATION = 300
FIXED_POSITION_RELEASE_DELAY = 300
RESTART_ALPHA = 0.1
PIN_ALPHA = 0.3
RESIZE_ALPHA = 0.3
DRAG_ALPHA_TARGET = 0.3

PERSONA_COLORS = {
    "optimist": "#10b981",
    "pessimist": "#ef4444",
    "realist": "#6b7280",
}
PROMPT_COLOR = "#667eea"
DEFAULT_COLOR = "#94a3b8"
