from typing import Any, Dict, List, Optional, Sequence
import json
import os
import boto3
from boto3.session import Session
from botocore.config import Config
from section_cdc.actions.base import TableAction
from section_cdc.rows import ChangeKind, ChangeRow, DeleteRow, InsertRow, UpdateRow
from section_cdc.utils.logger import logger
from section_cdc.utils.serializer import Serializer
from section_cdc.utils.exceptions import ActionError, ConfigurationError


class SQSAction(TableAction):
    """
    Forwards dispatched runs to an AWS SQS queue.

    Every row of a run becomes one message carrying its effective kind, its
    table and its images. Messages are sent in SQS batches that respect the
    service limits:
    - Maximum of 10 messages per batch
    - Maximum of 262,144 bytes per batch request
    - Maximum of 256KB per individual message

    Any message SQS refuses fails the whole run with ActionError, so the
    handler's recovery policy decides what happens next.
    """

    SQS_MAX_BATCH_SIZE = 10
    # Slightly below the actual 262,144 limit
    SQS_BATCH_REQUEST_SIZE_LIMIT = 262_000
    # Leaves room for message attributes
    SQS_EFFECTIVE_SIZE_LIMIT = 240 * 1024

    def __init__(
        self,
        table: Optional[str] = None,
        queue_url: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        source: Optional[str] = None,
    ):
        """
        Initialize the SQS action.

        Args:
            table: "schema.table" stamped on every message.
            queue_url: The URL of the SQS queue. Defaults to SQS_QUEUE_URL.
            region: The AWS region. Defaults to AWS_REGION.
            endpoint_url: The AWS endpoint URL. Defaults to AWS_ENDPOINT_URL.
            aws_access_key_id: Defaults to AWS_ACCESS_KEY_ID.
            aws_secret_access_key: Defaults to AWS_SECRET_ACCESS_KEY.
            source: Source attribute for the messages. Defaults to SOURCE.

        Raises:
            ConfigurationError: If any required configuration parameter is missing.
        """
        self.table = table
        self.source = source or os.getenv("SOURCE") or "section_cdc"

        self.queue_url = queue_url or os.getenv("SQS_QUEUE_URL")
        if not self.queue_url:
            raise ConfigurationError("SQS_QUEUE_URL is required")

        self.region = region or os.getenv("AWS_REGION")
        if not self.region:
            raise ConfigurationError("AWS_REGION is required")

        # Optional: only set for localstack and similar endpoints
        self.endpoint_url = endpoint_url or os.getenv("AWS_ENDPOINT_URL")

        self.aws_access_key_id = aws_access_key_id or os.getenv("AWS_ACCESS_KEY_ID")
        self.aws_secret_access_key = aws_secret_access_key or os.getenv(
            "AWS_SECRET_ACCESS_KEY"
        )

        self.serializer = Serializer()
        self._client = None
        self._session: Optional[Session] = None
        self._sequence = 0

    def _create_session(self) -> Session:
        if self._session is None:
            self._session = boto3.session.Session(
                region_name=self.region,
                aws_access_key_id=self.aws_access_key_id,
                aws_secret_access_key=self.aws_secret_access_key,
            )
        return self._session

    def _get_client(self) -> Any:
        """
        Get or create the boto3 SQS client.

        Returns:
            Any: The configured boto3 SQS client.
        """
        if self._client is None:
            session = self._create_session()
            config = Config(
                connect_timeout=3,
                read_timeout=5,
                retries={"max_attempts": 3},
                tcp_keepalive=True,
            )
            self._client = session.client(
                "sqs", endpoint_url=self.endpoint_url, config=config
            )
            logger.debug(
                f"Setup SQS client: {self.queue_url} - {self.endpoint_url} "
                f"- {self.region}"
            )
        return self._client

    def on_insert(self, rows: Sequence[InsertRow]) -> None:
        self.send(ChangeKind.INSERT, rows)

    def on_update(self, rows: Sequence[UpdateRow]) -> None:
        self.send(ChangeKind.UPDATE, rows)

    def on_delete(self, rows: Sequence[DeleteRow]) -> None:
        self.send(ChangeKind.DELETE, rows)

    def send(self, kind: ChangeKind, rows: Sequence[ChangeRow]) -> None:
        """
        Send a run of rows to SQS, one message per row, in order.

        Args:
            kind: Effective kind of the run.
            rows: Rows of the run.

        Raises:
            ActionError: If a message cannot be prepared or SQS rejects it.
        """
        if not rows:
            return

        client = self._get_client()

        batch_entries: List[Dict[str, Any]] = []
        current_batch_size = 0

        for row in rows:
            entry = self._prepare_message(kind, row)
            entry_size = self._calculate_entry_size(entry)

            if (
                current_batch_size + entry_size > self.SQS_BATCH_REQUEST_SIZE_LIMIT
                or len(batch_entries) >= self.SQS_MAX_BATCH_SIZE
            ):
                self._send_batch_to_sqs(client, batch_entries)
                batch_entries = []
                current_batch_size = 0

            batch_entries.append(entry)
            current_batch_size += entry_size

        if batch_entries:
            self._send_batch_to_sqs(client, batch_entries)

    def _next_id(self) -> str:
        self._sequence += 1
        return str(self._sequence)

    def _prepare_message(self, kind: ChangeKind, row: ChangeRow) -> Dict[str, Any]:
        message = self.serializer.serialize(row.to_dict())
        message["event_type"] = kind.value
        if self.table:
            message["table"] = self.table

        message_id = self._next_id()
        try:
            message_body = json.dumps(message)
        except (TypeError, ValueError) as e:
            raise ActionError(f"Failed to prepare message {message_id}: {e}") from e

        message_size = len(message_body.encode("utf-8"))
        if message_size > self.SQS_EFFECTIVE_SIZE_LIMIT:
            logger.warning(f"Message size exceeds SQS limit: {message_size} bytes")
            return self._create_oversized_message_reference(kind, message_id)

        return {
            "Id": message_id,
            "MessageBody": message_body,
            "MessageAttributes": {
                "source": {"StringValue": self.source, "DataType": "String"},
                "event_type": {"StringValue": kind.value, "DataType": "String"},
            },
        }

    def _calculate_entry_size(self, entry: Dict[str, Any]) -> int:
        return len(json.dumps(entry).encode("utf-8"))

    def _create_oversized_message_reference(
        self, kind: ChangeKind, message_id: str
    ) -> Dict[str, Any]:
        """Replace an oversized row message by a small reference message."""
        simplified_message = {
            "original_size_exceeded": True,
            "message_id": message_id,
            "event_type": kind.value,
        }
        if self.table:
            simplified_message["table"] = self.table

        logger.info(f"Created reference for oversized message: {message_id}")

        return {
            "Id": message_id,
            "MessageBody": json.dumps(simplified_message),
            "MessageAttributes": {
                "source": {"StringValue": self.source, "DataType": "String"},
                "oversized": {"StringValue": "true", "DataType": "String"},
            },
        }

    def _send_batch_to_sqs(self, client: Any, entries: List[Dict[str, Any]]) -> None:
        """
        Send a batch of messages to SQS.

        Raises:
            ActionError: If any message of the batch fails to send.
        """
        if not entries:
            return

        try:
            response = client.send_message_batch(
                QueueUrl=self.queue_url, Entries=entries
            )
        except Exception as e:
            if "BatchRequestTooLong" in str(e) and len(entries) > 1:
                mid = len(entries) // 2
                logger.info(f"Splitting batch of {len(entries)} messages and retrying")
                self._send_batch_to_sqs(client, entries[:mid])
                self._send_batch_to_sqs(client, entries[mid:])
                return
            logger.error(f"SQS send_message_batch failed: {str(e)}")
            raise ActionError(f"Failed to send messages to SQS: {str(e)}") from e

        failed = response.get("Failed") or []
        if failed:
            for failed_msg in failed:
                logger.error(
                    f"Message {failed_msg['Id']} failed: "
                    f"{failed_msg.get('Message', 'Unknown error')}"
                )
            failed_ids = [item["Id"] for item in failed]
            raise ActionError(
                f"Failed to send {len(failed)} messages to SQS. IDs: {failed_ids}"
            )

        logger.debug(f"Successfully sent {len(response.get('Successful', []))} messages to SQS")

    def close(self) -> None:
        self._client = None
        self._session = None
