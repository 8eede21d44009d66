# ============================================
# 錯誤類型
# repository / service 丟出,app 的 errorhandler 轉成 HTTP 回應
# ============================================


class AppError(Exception):
    """所有應用程式錯誤的基底類別"""
    status_code = 500
    message = 'internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)

    @classmethod
    def with_detail(cls, detail):
        """在預設訊息後面加上細節,例如 'cannot unmarshal request object: ...'"""
        return cls(f"{cls.message}: {detail}")


class NotFoundError(AppError):
    """查無資料 (no rows / 0 rows affected)"""
    status_code = 404
    message = 'entities not found'


class AlreadyExistsError(AppError):
    """違反唯一性約束"""
    status_code = 409
    message = 'entity already exists in repo'


class BadRequestError(AppError):
    """JSON 格式錯誤、ID 格式錯誤、缺少必填欄位"""
    status_code = 400
    message = 'cannot unmarshal request object'


class UnauthorizedError(AppError):
    """帳號密碼不符或 token 無效"""
    status_code = 401
    message = 'wrong credentials (email or password)'
