import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get('/messages', response_class=PlainTextResponse)
async def messages_status():
    """Health check variant of the messages endpoint"""
    return "Tableau Guide message endpoint is running. POST {\"message\": \"...\"} to ask a question."


@router.post('/messages')
async def send_message(request: Request):
    """Answer a question sent by the chat widget"""
    try:
        data = await request.json()
    except ValueError:
        data = None

    message = data.get('message') if isinstance(data, dict) else None
    if not isinstance(message, str) or not message.strip():
        return JSONResponse({'error': 'Message is required'}, status_code=400)

    knowledge = request.app.state.knowledge
    try:
        answer = await knowledge.ask(message.strip())
        return {'content': [{'type': 'text', 'text': answer}]}
    except Exception as e:
        logger.error(f"Error answering message: {str(e)}")
        return JSONResponse({'error': str(e)}, status_code=500)


@router.get('/health')
async def health_check(request: Request):
    knowledge = request.app.state.knowledge
    return {'status': 'OK', 'ready': knowledge.ready, 'mode': knowledge.mode.value}
