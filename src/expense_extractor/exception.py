import sys


def error_message_detail(error, error_detail=sys) -> str:
    """
    Build an error message carrying the file and line of the active traceback.
    Falls back to the bare message when no exception is being handled.
    """
    _, _, exc_tb = error_detail.exc_info()
    if exc_tb is None:
        return str(error)

    while exc_tb.tb_next is not None:
        exc_tb = exc_tb.tb_next
    file_name = exc_tb.tb_frame.f_code.co_filename
    return "Error occurred in python script [{0}] line number [{1}] error message [{2}]".format(
        file_name, exc_tb.tb_lineno, str(error)
    )


class CustomException(Exception):
    def __init__(self, error_message, error_detail=sys):
        super().__init__(error_message)
        self.error_message = error_message_detail(error_message, error_detail=error_detail)

    def __str__(self):
        return self.error_message
