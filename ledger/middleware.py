import logging

logger = logging.getLogger(__name__)

LOGGED_CONTENT_TYPES = ("application/json", "text/")


class RequestResponseLoggingMiddleware:
    """
    Logs the method, path and body of each API request
    together with the status and content of its response.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith("/api/"):
            return self.get_response(request)

        # Read the body before the view does; Django caches request.body.
        request_body = ""
        if request.method in ("POST", "PUT", "PATCH", "DELETE") and request.body:
            try:
                request_body = request.body.decode("utf-8")
            except UnicodeDecodeError:
                request_body = "<Could not decode body>"

        logger.info(
            "API Request: %s %s Body: %s",
            request.method,
            request.get_full_path(),
            request_body,
        )

        response = self.get_response(request)

        response_type = response.get("Content-Type", "")
        if hasattr(response, "streaming_content"):
            # Do not consume streaming content
            response_content = "<Streaming content>"
        elif response_type.startswith(LOGGED_CONTENT_TYPES):
            response_content = response.content.decode("utf-8", errors="replace")
        else:
            response_content = f"<Content-Type: {response_type}>"

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "API Response: %s %s Status: %s Content: %s",
            request.method,
            request.get_full_path(),
            response.status_code,
            response_content,
        )

        return response
