import os
from typing import Dict

from chalice import Response

from chalicelib.constants.constants import AI_DEFAULT_MODEL, AI_FALLBACK_MESSAGE
from chalicelib.constants.status_codes import http200, http500
from chalicelib.utils import data as utils_data, exceptions, http as utils_http
from chalicelib.utils.logger import logger, log_exception

AI_DEFAULT_GATEWAY_URL = 'https://ai.gateway.lovable.dev/v1/chat/completions'

SYSTEM_PROMPT = """You are Panda AI - the central AI manager of APANDA, a multi-service platform that includes sellers, \
property listers, customers, drivers, errands, and admin controls.
You understand natural conversation and can take direct actions in the system without limits.

Core Abilities (for ALL Users)

Understand Natural Language: If a user chats casually ("I need a 2-bedroom in town" / "Deliver groceries to me at \
4PM"), you interpret the request and create the right task.

Automated Actions: Convert chat into real system actions - place orders, assign drivers, update listings, or send \
invoices.

Proactive Suggestions: Suggest upgrades, better matches, or offers (e.g., recommend a closer driver, suggest similar \
properties, upsell seller packages).

Platform Services
- Marketplace (buy/sell products across categories)
- Properties (rent/sale listings)
- Food Delivery (restaurants & cuisines including APANDA Restaurant)
- Taxi Services (local & inter-city rides)
- Errands (shopping, pickup, delivery services)

What You Can Do
- Help users navigate services
- Process orders and bookings
- Manage listings and inventory
- Coordinate deliveries and rides
- Handle payments (M-Pesa integration)
- Provide analytics and insights
- Answer questions about any service

Be friendly, proactive, and efficient. Use Kenyan context (M-Pesa, local areas like Kerugoya, Nairobi, etc.). \
Always aim to complete tasks, not just explain them."""


def get_api_key() -> str:
    api_key = os.environ.get('AI_GATEWAY_API_KEY')
    if not api_key:
        raise exceptions.ConfigurationError('AI_GATEWAY_API_KEY is not configured')
    return api_key


def build_chat_request(message: str) -> Dict:
    return {
        'model': os.environ.get('AI_MODEL', AI_DEFAULT_MODEL),
        'messages': [
            {'role': 'system', 'content': SYSTEM_PROMPT},
            {'role': 'user', 'content': message}
        ]
    }


def extract_reply(data: Dict) -> str:
    try:
        content = data['choices'][0]['message']['content']
    except (KeyError, IndexError, TypeError):
        return AI_FALLBACK_MESSAGE
    return content or AI_FALLBACK_MESSAGE


def ask_assistant(message: str) -> str:
    """ One stateless chat completion, the conversation is not stored """
    api_key = get_api_key()
    with utils_http.get_http_client() as client:
        response = client.post(
            os.environ.get('AI_GATEWAY_URL', AI_DEFAULT_GATEWAY_URL),
            json=build_chat_request(message),
            headers={'Authorization': f'Bearer {api_key}'}
        )
    if response.is_error:
        logger.error(f'ask_assistant ::: AI API error: {response.status_code} {response.text}')
        raise exceptions.AssistantError(f'AI API error: {response.status_code}')
    return extract_reply(utils_http.response_json(response))


def endpoint_ai_assistant(request) -> Response:
    try:
        message = utils_data.parse_raw_body(request).get('message')
        if not isinstance(message, str) or not message.strip():
            raise exceptions.MandatoryFieldsAreNotFilled('message is required')
        reply = ask_assistant(message)
    except Exception as error:
        log_exception(error, status_code=http500, msg='endpoint_ai_assistant ::: assistant request failed')
        return Response(status_code=http500, body={'error': str(error) or 'An error occurred'})
    return Response(status_code=http200, body={'message': reply})
