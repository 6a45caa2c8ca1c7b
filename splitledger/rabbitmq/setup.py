import logging
import pika
from splitledger.core.config import settings

logger = logging.getLogger(__name__)


class RabbitMQSetup:
    """Creates connections and declares the expense events exchange"""

    def __init__(self, url: str = None, exchange: str = None):
        self.url = url or settings.RABBITMQ_URL
        self.exchange = exchange or settings.RABBITMQ_EXCHANGE

    def create_connection(self) -> pika.BlockingConnection:
        return pika.BlockingConnection(pika.URLParameters(self.url))

    def declare_exchange(self, channel) -> None:
        channel.exchange_declare(exchange=self.exchange, exchange_type="topic", durable=True)
        logger.info(f"Declared exchange {self.exchange}")


def init_rabbitmq() -> bool:
    """Declare the exchange once at startup; returns False when disabled or unreachable"""
    if not settings.RABBITMQ_ENABLED:
        logger.info("RabbitMQ disabled, expense events will not be published")
        return False

    setup = RabbitMQSetup()
    try:
        connection = setup.create_connection()
        try:
            setup.declare_exchange(connection.channel())
        finally:
            connection.close()
        return True
    except Exception as e:
        logger.error(f"Failed to initialize RabbitMQ: {e}")
        return False
