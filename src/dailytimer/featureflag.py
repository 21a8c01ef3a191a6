"""
Set some booleans that control runtime options.
"""

USE_SUDO = True                     # prefix privileged commands with sudo, unless
                                    # we are already running as root
SHOW_STATUS_AFTER_INSTALL = False   # controls whether 'dailytimer install' ends by
                                    # printing 'systemctl status' for the timer
