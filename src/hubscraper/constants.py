# src/hubscraper/constants.py
from enum import Enum

# Fixed bot identity sent with every outbound request
DEFAULT_USER_AGENT = "The-AI-Resource-Hub-Bot/1.0 (+https://theairesourcehub.com)"

ACCEPT_ANY = "text/html,application/json,*/*"
ACCEPT_JSON = "application/json"

COMMON_HEADERS = {
    "Accept": ACCEPT_ANY,
    "Accept-Language": "en-US,en;q=0.9",
}

# Aggregator prices are per token; the hub stores prices per 1M tokens
PRICE_UNIT_MULTIPLIER = 1_000_000
PRICE_DECIMALS = 3

# Digest files look like 2026-02-14-digest.md
DIGEST_FILENAME_PATTERN = r"^(\d{4}-\d{2}-\d{2})-digest\.md$"

# Number of leading items in a non-video digest section tagged as "top"
TOP_STORY_COUNT = 5

SLUG_MAX_LENGTH = 80


class ModelCategory(str, Enum):
    LLM = "llm"
    IMAGE = "image"
    VIDEO = "video"
    SPEECH = "speech"
    VOICE = "voice"
    MUSIC = "music"


class ModelStatus(str, Enum):
    ACTIVE = "active"
    RETIRED = "retired"


class RunStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class NewsCategory(str, Enum):
    TOP = "top"
    NEWS = "news"
    VIDEO = "video"


# Section headings containing any of these keywords hold video content
VIDEO_SECTION_KEYWORDS = ("youtube", "video")

# Boilerplate navigation links that digests sometimes pick up as items
JUNK_TITLES = frozenset({
    "Browse Business",
    "Browse Sustainability",
    "Sponsored Content",
    "View All Latest",
    "Momentum AI",
})

JUNK_URL_PATTERNS = (
    r"/business/?$",
    r"/sustainability/?$",
    r"/sponsored/?$",
    r"events\.reutersevents\.com",
    r"artificial-intelligence-news/?$",
)

# Domain -> display name used when a digest item carries no explicit source
SOURCE_DISPLAY_NAMES = {
    "techcrunch.com": "TechCrunch",
    "theinformation.com": "The Information",
    "reuters.com": "Reuters",
    "bloomberg.com": "Bloomberg",
    "theverge.com": "The Verge",
    "arstechnica.com": "Ars Technica",
    "wired.com": "Wired",
    "venturebeat.com": "VentureBeat",
    "technologyreview.com": "MIT Tech Review",
    "nature.com": "Nature",
    "youtube.com": "YouTube",
    "openai.com": "OpenAI",
    "anthropic.com": "Anthropic",
    "deepmind.com": "DeepMind",
    "bbc.com": "BBC",
    "bbc.co.uk": "BBC",
    "nytimes.com": "NYT",
    "ft.com": "Financial Times",
}
