"""Capture errors. Each carries the message shown to the user."""


class CaptureError(Exception):
    """Base exception for input capture."""

    user_message = "无法读取输入内容，请重试。"

    def __init__(self, message: str = "", user_message: str = ""):
        if user_message:
            self.user_message = user_message
        super().__init__(message or self.user_message)


class NothingStagedError(CaptureError):
    """Submission attempted with no text, image or audio staged."""

    user_message = "请输入文字、拍摄照片或录制语音。"


class MicrophoneUnavailableError(CaptureError):
    """The microphone could not be opened (usually a permission denial)."""

    user_message = "无法访问麦克风，请检查权限。"


class UnsupportedMediaError(CaptureError):
    """The staged file is not an accepted image or is too large."""

    user_message = "不支持的图片格式或文件过大。"
