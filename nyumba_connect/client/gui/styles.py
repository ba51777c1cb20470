"""Shared style constants for the GUI client."""

SIDEBAR_BG = "#14532d"
PRIMARY_BG = "#f7faf7"
ACCENT = "#16a34a"
ACCENT_HOVER = "#15803d"
TEXT_PRIMARY = "#1f2933"
TEXT_MUTED = "#6b7280"
ERROR_TEXT = "#dc2626"
OWN_BUBBLE = "#dcfce7"
PEER_BUBBLE = "#e5e7eb"
PADDING = 8
BORDER_RADIUS = 6
