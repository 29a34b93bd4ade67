"""
Data manager for JSON word files and word data validation.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import WordSourceError
from .models import WordPair

# Keys used by the words.json format
SOURCE_KEY = "text_eng"
TARGET_KEY = "text_spa"

# 10MB limit
MAX_FILE_SIZE = 10 * 1024 * 1024


class DataManager:
    """
    Word source backed by a JSON file.

    Every call to fetch_word_pairs reads the file again, so edits to the word
    list are picked up by the next session without restarting.
    """

    def __init__(self, words_file: str = "./words/words.json"):
        """
        Initialize DataManager with the words file path.

        Args:
            words_file: Path to the JSON words file
        """
        self.words_file = Path(words_file)
        self.logger = logging.getLogger(__name__)
        self.last_word_count: Optional[int] = None
        self.last_error: Optional[str] = None

    def fetch_word_pairs(self) -> List[WordPair]:
        """
        Load all word pairs from the words file.

        Returns:
            List of WordPair objects, possibly empty

        Raises:
            WordSourceError: If the file cannot be read or has an invalid structure
        """
        try:
            data = self._load_file()
            words = self.parse_word_pairs(data)
        except WordSourceError as e:
            self.last_error = str(e)
            self.logger.error(f"Failed to load words from {self.words_file}: {e}")
            raise

        self.last_word_count = len(words)
        self.last_error = None
        self.logger.info(f"Loaded {len(words)} words from {self.words_file}")
        return words

    def _load_file(self) -> Any:
        """
        Read and decode the words file.

        Raises:
            WordSourceError: On missing, unreadable, oversized or non-JSON files
        """
        if not self.words_file.exists():
            raise WordSourceError(f"Words file not found: {self.words_file}")

        if not os.access(self.words_file, os.R_OK):
            raise WordSourceError(f"Permission denied: Cannot read {self.words_file}")

        try:
            file_size = self.words_file.stat().st_size
            if file_size > MAX_FILE_SIZE:
                raise WordSourceError(
                    f"Words file too large ({file_size / 1024 / 1024:.1f}MB). "
                    f"Maximum size is {MAX_FILE_SIZE / 1024 / 1024}MB"
                )

            with open(self.words_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise WordSourceError(f"Invalid JSON in {self.words_file}: {e}") from e
        except OSError as e:
            raise WordSourceError(f"Failed to read words file {self.words_file}: {e}") from e

    def validate_words_structure(self, data: Any) -> Optional[str]:
        """
        Validate that JSON data has the words file structure.

        Expected structure:
        [
            {"text_eng": str, "text_spa": str},
            ...
        ]
        A top-level object {"words": [...]} is accepted as well.

        Args:
            data: Parsed JSON data to validate

        Returns:
            None if the structure is valid, otherwise a description of the problem
        """
        entries = self._entries(data)
        if entries is None:
            return "Words data must be an array or an object with a 'words' array"

        for i, entry in enumerate(entries):
            if not isinstance(entry, dict):
                return f"Word {i} must be an object"

            for key in (SOURCE_KEY, TARGET_KEY):
                if key not in entry:
                    return f"Word {i} missing '{key}' field"
                if not isinstance(entry[key], str):
                    return f"Word {i} '{key}' field must be a string"

        return None

    def parse_word_pairs(self, data: Any) -> List[WordPair]:
        """
        Parse words data into WordPair objects.

        Raises:
            WordSourceError: If the data fails validation
        """
        problem = self.validate_words_structure(data)
        if problem:
            raise WordSourceError(f"Invalid words structure in {self.words_file}: {problem}")

        return [
            WordPair(source=entry[SOURCE_KEY], target=entry[TARGET_KEY])
            for entry in self._entries(data)
        ]

    @staticmethod
    def _entries(data: Any) -> Optional[list]:
        if isinstance(data, dict):
            data = data.get("words")
        return data if isinstance(data, list) else None

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last load operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'words_file': str(self.words_file),
            'word_count': self.last_word_count,
            'has_errors': self.last_error is not None,
            'last_error': self.last_error
        }
