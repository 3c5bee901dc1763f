import sys

from lieut import AppInfo, SingleCommandApp, command_line


def echo(context, arguments, out):
    print(arguments, file=out)


def main(arguments=None):
    app = SingleCommandApp(
        AppInfo(name="example"),
        echo,
        command_line,
        sys.stdout,
        sys.stderr,
    )
    return app.run(None, sys.argv[1:] if arguments is None else arguments)


if __name__ == '__main__':
    sys.exit(main())
