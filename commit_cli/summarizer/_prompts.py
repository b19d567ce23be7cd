"""Prompt templates for commit message summarization.

Written for a wide range of model sizes, from small local models to hosted
frontier models, so instructions are short and explicit.
"""

SYSTEM_PROMPT = (
    "You are a senior engineer who writes precise git commit messages. "
    "Output only the requested text, with no preamble or explanation."
).strip()

# Direct path - the whole change set fits in one request
COMMIT_MESSAGE_PROMPT = """Write a git commit message for the following changes.

{format_instructions}

Changes:
{content}

Commit message:""".strip()

# CHUNK - Used in map phase of map-reduce summarization
CHUNK_SUMMARY_PROMPT = """Summarize the code changes in this part of a larger commit.
Describe what changed and why it matters in a few short sentences.

File: {label}
Chunk {chunk_index} of {total_chunks} (split level: {split_level}){part_info}
{header_context}
Changes:
{content}

Summary of this chunk:""".strip()

# MERGE - Combine chunk summaries in reduce phase
MERGE_SUMMARY_PROMPT = """Combine the following summaries of code changes into one coherent git commit message.
Keep the most important changes, remove repetition, and do not invent changes.

{summaries}

{format_instructions}

Commit message:""".strip()

CONVENTIONAL_FORMAT_INSTRUCTIONS = """Use the Conventional Commits format: type(scope): subject
Allowed types: feat, fix, docs, style, refactor, perf, test, build, ci, chore, revert""".strip()

FREE_FORMAT_INSTRUCTIONS = (
    "Start with a short summary line, optionally followed by a blank line and details."
)

LANGUAGE_INSTRUCTION = "Write the commit message in {language}."

_LANGUAGE_NAMES = {
    "en": "English",
    "zh-cn": "Simplified Chinese",
    "zh-tw": "Traditional Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
}

# FILTER - Classify files as core vs. ignorable
FILTER_SYSTEM_PROMPT = """You are a tech lead reviewing the list of files in a git change.
Identify the files that carry meaningful changes to keep for the commit message.

Ignore:
1. Lockfiles: package-lock.json, pnpm-lock.yaml, yarn.lock, Cargo.lock, poetry.lock, uv.lock
2. Build output: files under dist/, build/, out/, .next/, target/, bin/, obj/
3. Generated code: *.generated.ts, *.g.cs, *_pb2.py, *_pb.js, *.pb.go
4. Test snapshots: __snapshots__/, *.snap
5. Minified bundles: *.min.js, *.min.css, *.bundle.js
6. Binary assets: images, fonts
7. IDE settings: .vscode/, .idea/, *.iml
8. Temporary files: *.tmp, *.log, *.cache

Keep source code, configuration (except lockfiles), documentation, tests and stylesheets.

Return ONLY a JSON array of strings with the paths to keep. No explanation, no markdown.

Example input: [{"path": "src/index.ts", "status": "Modified"}, {"path": "package-lock.json", "status": "Modified"}]
Example output: ["src/index.ts"]""".strip()

FILTER_USER_PROMPT = """Analyze this list of changed files and return the paths to keep:

{file_list_json}

Return only a JSON array of strings, like ["file1.py", "file2.js"].""".strip()


def language_name(language: str) -> str:
    """Return a readable language name for a language code."""
    return _LANGUAGE_NAMES.get(language.lower(), language)


def format_instructions(commit_format: str, language: str) -> str:
    """Build the formatting guidance appended to commit message prompts."""
    parts = [
        CONVENTIONAL_FORMAT_INSTRUCTIONS
        if commit_format == "conventional"
        else FREE_FORMAT_INSTRUCTIONS,
        LANGUAGE_INSTRUCTION.format(language=language_name(language)),
    ]
    return "\n".join(parts)


def format_summaries_for_merge(grouped: dict[str, list[str]]) -> str:
    """Format summaries grouped by file or group label."""
    sections = []
    for label, summaries in grouped.items():
        lines = [f"File: {label}"]
        lines.extend(f"  - {summary}" for summary in summaries)
        sections.append("\n".join(lines))
    return "\n\n".join(sections)
