from flask import current_app

from mrcars_admin.client import QueryClient

db = QueryClient()


def current_client() -> QueryClient:
    return current_app.extensions["query_client"]
