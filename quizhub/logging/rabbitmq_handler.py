import asyncio
from typing import Optional

import aio_pika
from faststream import FastStream
from faststream.rabbit import RabbitBroker

from quizhub.core.config import settings
from .log_models import StructuredLogEntry, LogLevel


class RabbitMQLogPublisher:
    """
    Публикует структурированные логи в RabbitMQ через FastStream.
    Отправляются только WARNING и выше.
    """

    def __init__(
        self,
        rabbitmq_url: str,
        exchange_name: str = "logs",
        routing_key: str = "application.logs"
    ):
        self.rabbitmq_url = rabbitmq_url
        self.exchange_name = exchange_name
        self.routing_key = routing_key
        self.broker: Optional[RabbitBroker] = None
        self.app: Optional[FastStream] = None
        self._initialized = False
        self._lock = asyncio.Lock()

    async def initialize(self):
        """Инициализирует соединение с RabbitMQ"""
        if not self._initialized:
            async with self._lock:
                if not self._initialized:
                    try:
                        self.broker = RabbitBroker(self.rabbitmq_url)
                        self.app = FastStream(self.broker)

                        await self.broker.connect()

                        # Создаем exchange через aio-pika
                        connection = await aio_pika.connect_robust(self.rabbitmq_url)
                        channel = await connection.channel()
                        await channel.declare_exchange(
                            self.exchange_name,
                            aio_pika.ExchangeType.TOPIC,
                            durable=True
                        )
                        await connection.close()

                        self._initialized = True

                    except Exception as e:
                        print(f"Failed to initialize RabbitMQ publisher: {e}")
                        self._initialized = False

    async def publish_log(self, log_entry: StructuredLogEntry) -> bool:
        """Публикует структурированный лог в RabbitMQ"""
        if log_entry.level not in (LogLevel.WARNING.value, LogLevel.ERROR.value, LogLevel.CRITICAL.value):
            return False

        try:
            await self.initialize()

            if not self._initialized or not self.broker:
                return False

            log_data = {**log_entry.to_dict(), "source": "structured_logger"}

            await self.broker.publish(
                message=log_data,
                exchange=self.exchange_name,
                routing_key=self.routing_key
            )
            return True

        except Exception as e:
            print(f"Error publishing log to RabbitMQ: {e}")
            return False

    async def close(self):
        """Закрывает соединение с RabbitMQ"""
        if self.broker:
            try:
                await self.broker.close()
                self._initialized = False
            except Exception as e:
                print(f"Error closing RabbitMQ publisher: {e}")


# Глобальный экземпляр издателя логов
_rabbitmq_publisher: Optional[RabbitMQLogPublisher] = None


def get_rabbitmq_publisher() -> RabbitMQLogPublisher:
    """Получает глобальный экземпляр издателя логов в RabbitMQ"""
    global _rabbitmq_publisher
    if _rabbitmq_publisher is None:
        _rabbitmq_publisher = RabbitMQLogPublisher(
            rabbitmq_url=settings.RABBITMQ_URL,
            exchange_name=settings.RABBITMQ_EXCHANGE,
            routing_key=settings.RABBITMQ_ROUTING_KEY
        )
    return _rabbitmq_publisher


async def close_rabbitmq_publisher():
    """Закрывает глобальный издатель логов в RabbitMQ"""
    global _rabbitmq_publisher
    if _rabbitmq_publisher:
        await _rabbitmq_publisher.close()
        _rabbitmq_publisher = None
