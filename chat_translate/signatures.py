"""
Structural signatures of chat markup.

Each tuple is ordered by priority: the first selector that matches wins
wherever a single result is wanted. The selectors target Twitch-style chat
markup (``data-a-target`` attributes, ``chat-line`` class names) with
generic class-substring fallbacks.
"""

# Text length bounds for a single message, inclusive
MIN_MESSAGE_LENGTH = 2
MAX_MESSAGE_LENGTH = 500

# A chat element with more text than this may be the message container
CONTAINER_MIN_TEXT = 100
CONTAINER_MIN_MESSAGES = 2

CONTAINER_ATTRIBUTE_SELECTORS = (
    '[data-a-target="chat-scrollable-area"]',
    '[data-a-target="chat-messages"]',
    '[data-test-selector="chat-scrollable-area"]',
    'section[data-a-target="chat-container"]',
    'div[data-a-target="chat-container"]',
    '[aria-label*="Chat"]',
    '[aria-label*="chat"]',
)

CONTAINER_CLASS_SELECTORS = (
    '.chat-scrollable-area__message-container',
    '.chat-list',
    '[class*="chat-list"]',
    '[class*="chat-messages"]',
    '[class*="chatContainer"]',
)

# Candidates for the content-density fallback
CHAT_RELATED_SELECTOR = '[data-a-target*="chat"], [class*="chat"], [id*="chat"]'

MESSAGE_SELECTORS = (
    '[data-a-target="chat-line-message"]',
    '[data-a-target="chat-message"]',
    '[data-a-target="chat-line-message-body"]',
    '.chat-line__message',
    '.chat-line',
    '[data-test-selector="chat-line-message"]',
    '[class*="chat-line"]',
    '[class*="chatLine"]',
    '[class*="message"]',
)

# Structural fallback when none of MESSAGE_SELECTORS match
MESSAGE_FALLBACK_SELECTOR = 'div[data-a-target*="message"], div[class*="message"], div[class*="chat-line"]'

# Anything matching this counts as a message-shaped descendant
MESSAGE_SHAPE_SELECTOR = '[data-a-target*="message"], .chat-line, [class*="chat-line"]'

CHAT_ANCESTOR_SELECTOR = '[data-a-target*="chat"]'

MESSAGE_ATTRIBUTE_MARKERS = ("message", "chat")
MESSAGE_CLASS_MARKERS = ("chat-line", "message")

MESSAGE_TEXT_SELECTORS = (
    '.text-fragment',
    '[data-a-target="chat-message-text"]',
    '[data-a-target="chat-line-message-body"]',
    '.chat-line__message-text',
    'span[data-a-target="chat-message-text"]',
    '[class*="message-text"]',
    '[class*="text-fragment"]',
)

USERNAME_SELECTORS = (
    '[data-a-target="chat-message-username"]',
    '[data-a-target="chat-author"]',
    '.chat-author__display-name',
    '[class*="username"]',
    '[class*="author"]',
)

TIMESTAMP_SELECTORS = (
    '[data-a-target="chat-message-timestamp"]',
    '.chat-line__timestamp',
    '[class*="timestamp"]',
    '[class*="time"]',
)

BADGE_SELECTORS = (
    '[class*="badge"]',
    '[class*="emote"]',
    'img',
    'svg',
)

INDICATOR_CLASS = "translation-indicator"
INDICATOR_SELECTOR = f".{INDICATOR_CLASS}"
INDICATOR_MARK = " \U0001F310"
INDICATOR_STYLE = "opacity: 0.6; font-size: 0.9em; cursor: help; margin-left: 2px; display: inline-block;"

PROVENANCE_ATTRIBUTE = "data-original-text"
PROVENANCE_SELECTOR = f"[{PROVENANCE_ATTRIBUTE}]"

DECORATION_SELECTORS = USERNAME_SELECTORS + TIMESTAMP_SELECTORS + BADGE_SELECTORS + (INDICATOR_SELECTOR,)

COMMAND_PREFIXES = ("!", "/")
