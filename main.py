from rich.pretty import pprint

from helmsman import *

app = Application("tool", "Demo tool.", [Flag("debug", "D", FlagType.BOOL, descr="Debug mode.")], shell=True)

db = app.group("db", aliases=["d"], descr="Database tools.")
migrate = db.group("migrate", aliases=["m"], descr="Run migrations.")


@migrate.command(flags=[Flag("steps", "s", FlagType.INT, env="TOOL_STEPS", descr="How many steps.")])
def up(invocation):
    """Apply pending migrations."""
    pprint(invocation)


@app.command(aliases=["s"], maxargs=1, flags=[Flag("port", "p", FlagType.INT, default="8000", descr="Listening port.")])
def serve(invocation):
    """Start the server."""
    invocation.console.print("serving on port %d" % invocation.int("port"))


if __name__ == '__main__':
    app.run()
