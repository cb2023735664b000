"""Command-line tools for installing and operating the comment service."""
