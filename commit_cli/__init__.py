"""Generate git commit messages for change sets of any size."""
