def handler(request, context)
    return "unreachable"
