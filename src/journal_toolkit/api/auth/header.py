from fastapi import FastAPI, HTTPException, Request, status

from journal_toolkit.api.auth.base import AuthProvider

USER_ID_HEADER = "X-User-Id"


class HeaderAuthProvider(AuthProvider):
    def __init__(self, header_name: str = USER_ID_HEADER) -> None:
        self.header_name = header_name

    def get_current_user_id(self, request: Request) -> str:
        user_id = request.headers.get(self.header_name, "").strip()
        if not user_id:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
        return user_id

    def bind_to_app(self, app: FastAPI) -> None:
        # Identity is established upstream; nothing to register.
        pass
