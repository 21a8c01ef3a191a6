"""
Embedding the timer unit as a string constant.

Persistent=true makes systemd fire a missed run at the next boot.
"""

from inspect import cleandoc


DAILY_TIMER = (
    cleandoc(
        """
    [Unit]
    Description=Runs {vars[description]} Service daily at {vars[time]}

    [Timer]
    OnCalendar=*-*-* {vars[time]}
    Persistent=true

    [Install]
    WantedBy=timers.target
    """
    )
    + "\n"
)
