from infra.http.attempt_client import HttpAttemptGateway, error_for_response

__all__ = ["HttpAttemptGateway", "error_for_response"]
