from carpool_shared.rabbitmq import RabbitPublisher

from .config import RABBIT_URL, SERVICE_NAME

publisher = RabbitPublisher(RABBIT_URL, SERVICE_NAME)
