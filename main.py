from rich.pretty import pprint

from helmsman import *

__prog__ = "tool"


def configure(flags):
    flags.bool("verbose", usage="print each step while running")


@command("build [-o output] packages", "compile packages", flags=lambda flags: flags.string("o", "a.out", "write the result to `file`"))
def build(cmd, args):
    """
    Build compiles the named packages.

    The -o flag names the output file.
    """
    packages = cmd.flags.parse(args)
    if not packages:
        raise ValueError("no packages to build")
    pprint({"build": packages, "output": cmd.flags["o"]})


@command("test [-run regexp] packages", "test packages", flags=lambda flags: flags.string("run", usage="run only tests matching `regexp`"))
def test(cmd, args):
    """
    Test runs the tests of the named packages.
    """
    pprint({"test": cmd.flags.parse(args), "run": cmd.flags["run"]})


@command("deploy [-timeout d] target", "deploy a build", flags=lambda flags: flags.duration("timeout", usage="give up after `d`"))
def deploy(cmd, args):
    """
    Deploy ships the last build to the named target.
    """
    target = cmd.flags.parse(args)
    pprint({"deploy": target, "timeout": cmd.flags["timeout"]})


environment = Command("environment", "environment variables", """
    The tool reads no environment variables itself; commands may.
""")


program = Program("tool")
program.set_flags(configure)
program.add_commands(test, deploy, build, environment)


if __name__ == '__main__':
    program.execute()
