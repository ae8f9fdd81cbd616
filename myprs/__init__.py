"""
myprs - Status-bar report of your GitHub pull requests.

A small xbar/SwiftBar plugin that:
1. Searches GitHub for the pull requests you authored
2. Fetches the reviews of each open one
3. Compares them with the previous run's snapshot
4. Prints alerts for what changed, then a clickable list of your PRs

Usage:
    myprs                 # Print the status-bar report
    myprs --verbose       # Same, with debug logging on stderr
"""

__version__ = "0.1.0"
__author__ = "myprs"
