from fastapi import Request

from loanflow.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
