"""Dataset loader for timeline CSV files and location tables."""
import csv
import io
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Tuple

import boto3
import requests
from botocore.exceptions import ClientError

from processor.location_resolver import build_location_table
from processor.models import LocationTable

logger = logging.getLogger(__name__)


class DatasetError(Exception):
    """Raised when a dataset cannot be read as tabular data."""


def parse_s3_uri(source: str) -> Tuple[str, str]:
    """
    Split an s3://bucket/key URI.

    Raises:
        DatasetError: If the bucket or key is missing
    """
    bucket, _, key = source[len('s3://'):].partition('/')
    if not bucket or not key:
        raise DatasetError(f"Invalid S3 URI: {source}")
    return bucket, key


class DatasetLoader:
    """Loader reading timeline data from local files, HTTP or S3."""

    def __init__(self, timeout: int = 30, max_retries: int = 3):
        """
        Initialize the dataset loader.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: HTTP attempts before giving up (default: 3)
        """
        self.timeout = timeout
        self.max_retries = max_retries

    def load_rows(self, source: str) -> List[Dict[str, str]]:
        """
        Load raw timeline rows from a source.

        Args:
            source: Local path, http(s):// URL or s3:// URI

        Returns:
            List of records keyed by column name
        """
        rows = self.parse_csv(self.read_text(source))
        logger.info(f"Loaded {len(rows)} rows from {source}")
        return rows

    def load_location_table(self, source: str) -> LocationTable:
        """
        Load the static location table from a JSON source.

        Args:
            source: Local path, http(s):// URL or s3:// URI

        Returns:
            LocationTable keyed by place name
        """
        records = self.parse_location_records(self.read_text(source))
        return build_location_table(records)

    def read_text(self, source: str) -> str:
        """
        Read a text payload from a source.

        Raises:
            requests.RequestException: If all HTTP attempts fail
            ClientError: If the S3 object cannot be read
            OSError: If the local file cannot be read
        """
        if source.startswith(('http://', 'https://')):
            return self._fetch_url(source)
        if source.startswith('s3://'):
            return self._read_s3_object(source)
        return Path(source).read_text(encoding='utf-8-sig')

    def _fetch_url(self, url: str) -> str:
        """
        Fetch a URL with retry logic.

        Args:
            url: URL to fetch

        Returns:
            Response body as string

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching {url} (attempt {attempt + 1}/{self.max_retries})")
                response = requests.get(url, timeout=self.timeout)
                response.raise_for_status()
                # Decode as UTF-8 regardless of the declared charset; drops a BOM
                return response.content.decode('utf-8-sig')

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _read_s3_object(self, source: str) -> str:
        """
        Read an object from S3.

        Raises:
            DatasetError: If the URI is malformed
            ClientError: If the object cannot be read
        """
        bucket, key = parse_s3_uri(source)
        try:
            s3 = boto3.client('s3')
            response = s3.get_object(Bucket=bucket, Key=key)
            return response['Body'].read().decode('utf-8-sig')
        except ClientError as e:
            logger.error(f"Error reading s3://{bucket}/{key}: {e}")
            raise

    def parse_csv(self, text: str) -> List[Dict[str, str]]:
        """
        Parse CSV text with a header row into records.

        Blank lines are skipped. Lines with extra fields keep the named
        columns and drop the rest; short lines get empty values.

        Args:
            text: CSV payload

        Returns:
            List of records keyed by stripped column name

        Raises:
            DatasetError: If the payload is empty or cannot be parsed
        """
        if not text or not text.strip():
            raise DatasetError("Dataset is empty")

        try:
            reader = csv.reader(io.StringIO(text))
            header = None
            rows = []
            for line in reader:
                if not any(cell.strip() for cell in line):
                    continue
                if header is None:
                    header = [cell.strip() for cell in line]
                    continue
                rows.append(self._line_to_record(header, line, reader.line_num))
        except csv.Error as e:
            raise DatasetError(f"Unreadable CSV data: {e}") from e

        if header is None:
            raise DatasetError("Dataset has no header row")
        return rows

    def _line_to_record(self, header: List[str], line: List[str], line_num: int) -> Dict[str, str]:
        if len(line) > len(header):
            logger.warning(
                f"CSV line {line_num} has {len(line)} fields, expected "
                f"{len(header)}; extra fields ignored"
            )
        elif len(line) < len(header):
            logger.warning(
                f"CSV line {line_num} has {len(line)} fields, expected {len(header)}"
            )
            line = line + [''] * (len(header) - len(line))
        return {name: value for name, value in zip(header, line) if name}

    def parse_location_records(self, text: str) -> Any:
        """
        Parse the location table payload.

        Raises:
            DatasetError: If the payload is not valid JSON
        """
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DatasetError(f"Invalid location table JSON: {e}") from e
