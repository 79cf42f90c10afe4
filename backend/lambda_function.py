from mangum import Mangum
from main import app
import logging

logger = logging.getLogger(__name__)

# The API Gateway stage prefix is applied through root_path in main
handler = Mangum(app, lifespan="off")


def lambda_handler(event, context):
    logger.debug(f"Handling {event.get('httpMethod') or event.get('requestContext', {}).get('http', {}).get('method')} request")
    return handler(event, context)
