"""
reposync - Development environment bootstrap.

Clones a project's companion Git repositories into sibling directories
and generates an editor workspace that opens them side by side.

Run it once, run it twice. The second time it just nods at what's
already there.
"""

__version__ = "1.0.0"
__author__ = "reposync Contributors"
