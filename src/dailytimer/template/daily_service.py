"""
Embedding the service unit as a string constant.
"""

from inspect import cleandoc


DAILY_SERVICE = (
    cleandoc(
        """
    [Unit]
    Description={vars[description]} Service

    [Service]
    Type=simple
    ExecStart={vars[binary_path]}
    User={vars[user]}

    [Install]
    WantedBy=multi-user.target
    """
    )
    + "\n"
)
