from enum import Enum


class Channel(str, Enum):
    POPUP_USER = "popup_user"
    LOG = "log"


class PopupVariant(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    DESTRUCTIVE = "destructive"
