"""业务异常

路由层通过 main.py 中注册的异常处理器把它们转换为 JSON 响应：
{"detail": message}
"""


class MarkhubError(Exception):
    """业务异常基类"""
    status_code = 500
    default_message = "服务器内部错误"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MarkhubError):
    """输入缺失、过短或格式不正确"""
    status_code = 400
    default_message = "输入数据无效"


class ConflictError(MarkhubError):
    """用户名已被注册"""
    status_code = 409
    default_message = "该用户名已被使用"


class AuthError(MarkhubError):
    """凭据错误（不区分用户不存在和密码错误）"""
    status_code = 401
    default_message = "用户名或密码错误"


class StorageError(MarkhubError):
    """本地持久化写入失败（如超出配额）"""
    status_code = 507
    default_message = "数据保存失败，请检查存储空间"


class SyncError(MarkhubError):
    """远端文档存储调用失败"""
    status_code = 502
    default_message = "云端同步失败"
