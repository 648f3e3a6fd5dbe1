def handler(request):
    return "home"
