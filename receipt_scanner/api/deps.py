from fastapi import Request
from ..services.batch_scanner import BatchScanner


def get_batch_scanner(request: Request) -> BatchScanner:
    return request.app.state.batch_scanner
