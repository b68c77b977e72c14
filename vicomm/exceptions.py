from typing import Dict, List


class SubmissionError(Exception):
    """Raised when a listing form submission fails validation.

    ``errors`` maps form field names (``title``, ``listingImages[1].file``,
    ...) to messages. An empty key holds form-level messages.
    """

    def __init__(self, errors: Dict[str, List[str]]):
        super().__init__("Submission failed validation")
        self.errors = errors


class UpvoteConflict(Exception):
    """Raised when an upvote already exists, or is missing on un-like."""

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description
