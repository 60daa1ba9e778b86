"""nukeeper: automated package update pull requests for a fleet of repositories."""
