"""Echoes the request back as JSON."""

from lambdahttp import create_handler


async def echo(request, context):
    return {
        "method": request.method,
        "url": request.url,
        "query": request.search_params,
        "requestId": request.request_id,
    }


async def echo_body(request, context):
    return {"method": request.method, "body": await request.data()}


handler = create_handler(
    {"GET": echo, "POST": echo_body},
    allow_origins=["http://localhost:9999"],
    allow_credentials=True,
)
