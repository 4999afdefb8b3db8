"""Kafka publisher adapter built on aiokafka.

``publish`` returns as soon as the payload sits in the producer's send
queue. Delivery acknowledgement is awaited by a background task that logs
success or ``PublishError``; callers never block on the broker.
"""

import asyncio
import logging

import aiokafka
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from aiokafka.structs import RecordMetadata

from snapshot_relay.core.errors import PublishError

__all__ = ["KafkaPublisher", "DEFAULT_MESSAGE_TIMEOUT_MS"]

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_TIMEOUT_MS = 5000
DEFAULT_MAX_MESSAGE_BYTES = 1_048_576
CLIENT_ID = "snapshot-relay"


def _consume_late_result(delivery: "asyncio.Future[RecordMetadata]") -> None:
    """Retrieve a delivery result nobody waits for anymore."""
    if delivery.cancelled():
        return
    exc = delivery.exception()
    if exc is not None:
        logger.debug(f"Late delivery failure after timeout: {exc!r}")


class KafkaPublisher:
    """Long-lived producer handle shared by every tick.

    Usage:
        >>> publisher = KafkaPublisher("localhost:9092")
        >>> await publisher.start()
        >>> try:
        ...     ack = await publisher.publish(b"...", "snapshots")
        ... finally:
        ...     await publisher.stop()
    """

    def __init__(
        self,
        bootstrap_servers: str,
        *,
        message_timeout_ms: int = DEFAULT_MESSAGE_TIMEOUT_MS,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
    ) -> None:
        """Initialize publisher (does not connect).

        Args:
            bootstrap_servers: Comma separated ``host:port`` list.
            message_timeout_ms: How long to wait for a delivery
                acknowledgement before reporting the message as failed.
            max_message_bytes: Largest message the producer may send.
        """
        self.bootstrap_servers = bootstrap_servers
        self.message_timeout_ms = message_timeout_ms
        self.max_message_bytes = max_message_bytes
        self._producer: AIOKafkaProducer | None = None
        self._started = False
        self._acks: set[asyncio.Task[RecordMetadata | None]] = set()

    @property
    def is_started(self) -> bool:
        """True once start() succeeded and until stop()."""
        return self._started and self._producer is not None

    async def start(self) -> None:
        """Create the aiokafka producer and connect to the cluster.

        Raises:
            KafkaError: If the brokers cannot be reached.
        """
        if self._started:
            logger.warning("Producer already started, ignoring duplicate start call")
            return

        logger.info(f"aiokafka version {aiokafka.__version__}, brokers={self.bootstrap_servers}")

        producer = AIOKafkaProducer(
            bootstrap_servers=self.bootstrap_servers,
            client_id=CLIENT_ID,
            request_timeout_ms=self.message_timeout_ms,
            max_request_size=self.max_message_bytes,
        )
        await producer.start()
        self._producer = producer
        self._started = True
        logger.info("Kafka producer started")

    async def publish(self, payload: bytes, topic: str) -> "asyncio.Task[RecordMetadata | None]":
        """Enqueue payload for topic without waiting for the broker.

        Args:
            payload: Message value.
            topic: Destination topic.

        Returns:
            Background task resolving to the record metadata once the
            broker acknowledges, or None if delivery failed or timed out
            (the failure is logged as PublishError).

        Raises:
            PublishError: If the payload cannot be enqueued.
        """
        if not self.is_started:
            raise PublishError(topic, "producer not started")

        try:
            delivery = await self._producer.send(topic, value=payload)
        except KafkaError as e:
            raise PublishError(topic, f"enqueue failed: {e!r}") from e

        logger.debug(f"Enqueued {len(payload)} bytes for topic {topic}")

        task = asyncio.get_running_loop().create_task(self._await_ack(topic, delivery))
        self._acks.add(task)
        task.add_done_callback(self._acks.discard)
        return task

    async def _await_ack(
        self, topic: str, delivery: "asyncio.Future[RecordMetadata]"
    ) -> RecordMetadata | None:
        """Wait for one acknowledgement and log the outcome."""
        timeout_sec = self.message_timeout_ms / 1000
        try:
            metadata = await asyncio.wait_for(asyncio.shield(delivery), timeout=timeout_sec)
        except asyncio.TimeoutError:
            delivery.add_done_callback(_consume_late_result)
            logger.error(str(PublishError(topic, f"no acknowledgement within {timeout_sec}s")))
            return None
        except KafkaError as e:
            logger.error(str(PublishError(topic, f"broker rejected message: {e!r}")))
            return None
        except Exception as e:  # noqa: BLE001
            logger.error(str(PublishError(topic, f"unexpected delivery error: {e!r}")), exc_info=True)
            return None

        logger.debug(
            f"Delivered to {metadata.topic}[{metadata.partition}] at offset {metadata.offset}"
        )
        return metadata

    async def flush(self) -> None:
        """Send everything buffered and wait for outstanding acknowledgements.

        Raises:
            RuntimeError: If producer not started.
        """
        if not self.is_started:
            raise RuntimeError("Producer not started. Call start() first.")

        await self._producer.flush()
        if self._acks:
            logger.info(f"Waiting for {len(self._acks)} pending acknowledgement(s)...")
            await asyncio.gather(*list(self._acks), return_exceptions=True)

    async def stop(self) -> None:
        """Flush pending messages and close the connection.

        Safe to call multiple times.
        """
        if not self.is_started:
            logger.debug("Producer not started or already stopped")
            return

        logger.info("Stopping Kafka producer")
        try:
            await self.flush()
            await self._producer.stop()
            logger.info("Kafka producer stopped")
        finally:
            self._producer = None
            self._started = False
