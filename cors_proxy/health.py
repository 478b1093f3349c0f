from flask import Response


def healthz(request):
    return Response("OK", 200, mimetype="text/plain")


def ready(request):
    # No backend check: the proxy is ready as soon as it is listening.
    return Response("Ready", 200, mimetype="text/plain")
