"""ripple: coordinated semantic-version releases for uv workspaces."""
