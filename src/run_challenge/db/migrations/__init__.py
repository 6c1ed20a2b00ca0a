"""One-shot schema migrations."""
