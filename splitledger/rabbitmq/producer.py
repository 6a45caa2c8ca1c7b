import json
import logging
from datetime import datetime, timezone
from threading import Lock, RLock
from typing import Dict, Any, Optional
import pika
from splitledger.core.config import settings
from .setup import RabbitMQSetup

logger = logging.getLogger(__name__)


class RabbitMQProducer:
    """
    Publishes expense events for the notification service.

    A BlockingConnection is not thread-safe and sync routes run in a
    threadpool, so connect, publish and disconnect hold the producer lock.
    """

    def __init__(self):
        self.connection: Optional[pika.BlockingConnection] = None
        self.channel = None
        self.setup = RabbitMQSetup()
        self._lock = RLock()

    def connect(self) -> None:
        """Establish connection to RabbitMQ"""
        with self._lock:
            try:
                self.connection = self.setup.create_connection()
                self.channel = self.connection.channel()
                self.setup.declare_exchange(self.channel)
                logger.info("RabbitMQ producer connected successfully")
            except Exception as e:
                logger.error(f"Failed to connect RabbitMQ producer: {e}")
                raise

    def disconnect(self) -> None:
        """Close RabbitMQ connection"""
        with self._lock:
            if self.channel and not self.channel.is_closed:
                self.channel.close()
            if self.connection and not self.connection.is_closed:
                self.connection.close()
            logger.info("RabbitMQ producer disconnected")

    def publish(self, routing_key: str, payload: Dict[str, Any]) -> bool:
        """
        Publish one event message

        Args:
            routing_key: Event name, e.g. expense.created
            payload: JSON-serialisable event body

        Returns:
            bool: True if message published successfully, False otherwise
        """
        message_data = {
            "event": routing_key,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **payload
        }

        with self._lock:
            if not self.connection or self.connection.is_closed:
                self.connect()

            try:
                self.channel.basic_publish(
                    exchange=self.setup.exchange,
                    routing_key=routing_key,
                    body=json.dumps(message_data),
                    properties=pika.BasicProperties(
                        delivery_mode=2,  # Make message persistent
                        content_type='application/json'
                    )
                )
                logger.info(f"Published {routing_key} event")
                return True

            except Exception as e:
                logger.error(f"Failed to publish {routing_key} event: {e}")
                return False


# Global producer instance
_rabbitmq_producer: Optional[RabbitMQProducer] = None
_producer_lock = Lock()


def get_rabbitmq_producer() -> RabbitMQProducer:
    """Get or create RabbitMQ producer instance"""
    global _rabbitmq_producer
    with _producer_lock:
        if _rabbitmq_producer is None:
            producer = RabbitMQProducer()
            producer.connect()
            _rabbitmq_producer = producer
        return _rabbitmq_producer


def close_rabbitmq_producer() -> None:
    """Close RabbitMQ producer connection"""
    global _rabbitmq_producer
    with _producer_lock:
        if _rabbitmq_producer:
            _rabbitmq_producer.disconnect()
            _rabbitmq_producer = None


def publish_expense_event(routing_key: str, payload: Dict[str, Any]) -> bool:
    """Best-effort publish; a broker outage never fails the expense write"""
    if not settings.RABBITMQ_ENABLED:
        return False
    try:
        return get_rabbitmq_producer().publish(routing_key, payload)
    except Exception as e:
        logger.warning(f"Expense event {routing_key} dropped: {e}")
        return False
