##
# Custom logging setup and helper functions.
#
# The application (demo.py, scripts) instantiates a MainLogger once at
# startup.  That configures the root logger with a file handler and,
# optionally, a stdout stream handler; every usb4000 module then just logs to
# logging.getLogger(__name__) and inherits that configuration.  The acquisition
# thread logs through the same root logger, and the thread id in FORMAT
# distinguishes its lines from the caller's.
#
# @note on Windows, define PYTHONUTF8 environment variable to avoid error messages
#       when log messages contain Unicode (default stdout/stderr streams are cp1252)

import os
import sys
import logging
import platform

from . import utils

# ##############################################################################
#                                                                              #
#                    Semi-static, module-level functions                       #
#                                                                              #
# ##############################################################################

explicit_path = None

def set_location(path):
    global explicit_path
    explicit_path = path

def get_location():
    if explicit_path is not None:
        return explicit_path

    module_name = __name__.replace(".", "_") # "usb4000.applog" -> "usb4000_applog"
    filename = "%s.txt" % module_name        # "usb4000_applog.txt"

    if "Windows" in platform.system():
        return os.path.join("C:\\ProgramData", filename)
    return filename

def get_text_from_log():
    with open(get_location(), encoding="utf-8") as log_file:
        return log_file.read()

def log_file_created():
    return os.path.exists(get_location())

## Remove the specified log file and return True if succesful.
def delete_log_file_if_exists():
    pathname = get_location()
    if os.path.exists(pathname):
        os.remove(pathname)
    return not os.path.exists(pathname)

def explicit_log_close():
    root_log = logging.getLogger()
    root_log.debug("applog.explicit_log_close: closing and removing all handlers")
    handlers = root_log.handlers[:]
    for handler in handlers:
        handler.close()
        root_log.removeHandler(handler)

# ##############################################################################
#                                                                              #
#                                MainLogger                                    #
#                                                                              #
# ##############################################################################

class MainLogger(object):
    FORMAT = u'%(asctime)s [0x%(thread)08x] %(name)s %(levelname)-8s %(message)s'

    # the default "limit" append mode keeps up to 2mb between sessions
    APPEND_LIMIT_BYTES = 2 * 1024 * 1024

    def __init__(self,
            log_level=logging.DEBUG,
            enable_stdout=True,
            logfile=None,
            append_arg="limit"):
        self.log_level     = log_level
        self.enable_stdout = enable_stdout
        self.logfile       = logfile
        self.handlers      = []

        if self.logfile is not None:
            set_location(self.logfile)

        append = False
        if append_arg.lower() == "true":
            append = True
        elif append_arg.lower() == "limit":
            append = self.APPEND_LIMIT_BYTES

        root_log = logging.getLogger()
        self.log_configurer(self.logfile, append)
        root_log.setLevel(self.log_level)
        root_log.debug("Top level log configuration (%d handlers, get_location %s)", len(root_log.handlers), get_location())

    ## Setup file handler and command window stream handlers.
    def log_configurer(self, logfile=None, append=False):
        if logfile is not None:
            pathname = logfile
        else:
            pathname = get_location()

        try:
            if type(append) == int:
                utils.resize_file(path=pathname, nbytes=append)
        except OSError:
            print("Unable to truncate log file.")

        root_logger = logging.getLogger()
        formatter = logging.Formatter(self.FORMAT)

        fh = logging.FileHandler(pathname, mode='a' if append else 'w', encoding='utf-8')
        fh.setFormatter(formatter)
        root_logger.addHandler(fh)
        self.handlers.append(fh)

        if self.enable_stdout:
            stream_handler = logging.StreamHandler(sys.stdout)
            stream_handler.setFormatter(formatter)
            root_logger.addHandler(stream_handler)
            self.handlers.append(stream_handler)

        self.root = root_logger

    ## Detach and close only the handlers this MainLogger added.
    def close(self):
        for handler in self.handlers:
            handler.close()
            self.root.removeHandler(handler)
        self.handlers = []
