"""Rate limit dependency - counts each request per client IP and sets RateLimit headers."""

from fastapi import HTTPException, Request, Response

import structlog

logger = structlog.get_logger()


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """Count the request against the client's window; 429 once it is used up."""
    client_ip = request.client.host if request.client else "unknown"
    rate_limiter = request.app.state.rate_limiter
    status = rate_limiter.hit(client_ip)

    if not status.allowed:
        logger.warning("rate_limited", client_ip=client_ip, path=request.url.path)
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Rate limit exceeded",
                "message": f"Maximum {status.limit} requests per {status.window_seconds}s. Try again later.",
                "retry_after_seconds": status.reset_seconds,
            },
            headers=status.headers(),
        )

    response.headers.update(status.headers())
