from pathlib import Path

DEFAULT_DATA_DIR = (Path(__file__).parent.parent.resolve() / "data").absolute().resolve()
DEFAULT_STORAGE_DIR = DEFAULT_DATA_DIR / "repositories"

# Harvest ceilings (bytes)
MAX_FILE_SIZE_BYTES = 100_000  # Per-file, checked against the size reported by the API
MAX_TOTAL_SIZE_BYTES = 500_000  # Aggregate UTF-8 size of the accepted set
HARVEST_MAX_CONCURRENCY = 8  # Parallel downloads/uploads per batch

# Priority classes
PRIORITY_IMPORTANT = 3
PRIORITY_SOURCE = 2
PRIORITY_OTHER = 1

# Files that always get the highest priority
IMPORTANT_FILES = frozenset(
    {
        "README.md",
        "README.txt",
        "README.rst",
        "README",
        "CONTRIBUTING.md",
        "LICENSE",
        "LICENSE.md",
        "LICENSE.txt",
        "package.json",
        "requirements.txt",
        "pyproject.toml",
        "setup.py",
        "pom.xml",
        "build.gradle",
        "Cargo.toml",
        "go.mod",
        "Gemfile",
        "composer.json",
    }
)

# Source and documentation extensions
PRIORITY_EXTENSIONS = (
    ".js",
    ".jsx",
    ".ts",
    ".tsx",
    ".py",
    ".java",
    ".cpp",
    ".c",
    ".h",
    ".hpp",
    ".rb",
    ".php",
    ".go",
    ".rs",
    ".swift",
    ".kt",
    ".scala",
    ".md",
    ".txt",
)

# Directory names skipped wherever they appear in a path
SKIP_DIRECTORIES = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        ".git",
        "__pycache__",
        "target",
        "vendor",
        ".idea",
        ".vscode",
    }
)

# Generated/minified artifacts, matched against the file name
SKIP_FILE_PATTERNS = (
    "*.min.js",
    "*.bundle.js",
    "*.map",
    "*.d.ts",
)

# Storage layout
PATH_PLACEHOLDER = "__"  # Replaces "/" in flattened blob names
SUBMISSIONS_ROOT = "submissions"
DEFAULT_BUCKET = "repositories"

# GitHub API
GITHUB_API_URL = "https://api.github.com"
GITHUB_USER_AGENT = "repograde-harvester"
GITHUB_REQUEST_TIMEOUT = 30.0

# Gemini API
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"

# Grading defaults
GRADING_TEMPERATURE = 0.3
GRADING_MAX_OUTPUT_TOKENS = 10_000
GRADING_TIMEOUT_SECONDS = 120.0
CRITERION_SCORE_MAX = 20  # Fixed per-criterion scale requested in the prompt
OVERALL_SCORE_MAX = 100

# Retry policy applied by the submission pipeline
PIPELINE_MAX_ATTEMPTS = 3
PIPELINE_MALFORMED_RETRIES = 1
PIPELINE_BACKOFF_INITIAL_DELAY = 1.0
PIPELINE_BACKOFF_MAX_DELAY = 30.0

# User-facing progress stages
STAGE_PROCESSING = "Processing the repo"
STAGE_ANALYZING = "Analyzing the repo"
STAGE_PREPARING = "Preparing the report"
GENERIC_FAILURE_MESSAGE = "Evaluation failed, please try again."

# Environment variables
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_GEMINI_API_KEY = "GEMINI_API_KEY"
ENV_GEMINI_MODEL = "REPOGRADE_GEMINI_MODEL"
ENV_STORAGE_BACKEND = "REPOGRADE_STORAGE_BACKEND"  # "file" or "supabase"
ENV_STORAGE_DIR = "REPOGRADE_STORAGE_DIR"
ENV_SUPABASE_URL = "SUPABASE_URL"
ENV_SUPABASE_KEY = "SUPABASE_SERVICE_KEY"
ENV_SUPABASE_BUCKET = "SUPABASE_BUCKET"
