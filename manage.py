#!/usr/bin/env python
import os
import sys


def main():
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "video_pipeline.settings")
    from django.core.management import execute_from_command_line

    argv = list(sys.argv)
    # `manage.py runserver` with no address listens on $PORT (default 3001)
    if argv[1:] == ["runserver"]:
        argv.append(os.getenv("PORT", "3001"))
    execute_from_command_line(argv)


if __name__ == "__main__":
    main()
