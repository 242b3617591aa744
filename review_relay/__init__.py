"""
Review Relay

A webhook relay that receives GitHub pull request events, asks a
generative-language model to review the diff, and posts the review
back to the pull request as a comment.
"""

__version__ = "1.0.0"
__author__ = "Review Relay Team"
