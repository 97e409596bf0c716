class ToolbeltError(Exception):
    pass


class AuthError(ToolbeltError):
    pass


class ReadError(ToolbeltError):
    pass


class ValidationError(ToolbeltError):
    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            f"{len(self.errors)} invalid row(s):\n" + "\n".join(self.errors)
        )


class TransportError(ToolbeltError):
    pass


class RemoteServiceError(ToolbeltError):
    def __init__(self, errors: list[dict]):
        self.errors = list(errors)
        messages = [str(e.get("message", e)) for e in self.errors]
        super().__init__("; ".join(messages) or "Remote service error")


class ImportInterrupted(ToolbeltError):
    def __init__(self, counter: int):
        self.counter = counter
        super().__init__(f"Interrupted after {counter} committed batch(es).")


class ReconcileError(ToolbeltError):
    def __init__(self, path, message: str):
        self.path = path
        super().__init__(message)
