from rich.pretty import pprint

from argosy import *


@command(shell=True, colorful=True, version="1.0.0", examples=["{command_name} --height 5 north"])
def climb(
        route=Positional("route", descr="the route to climb"),
        /,
        height=Option("--height", converter=integer, default_factory=lambda: 5, descr="how high to go"),
        *,
        jump=Switch("-j", "--jump", descr="whether or not to jump"),
):
    """Reach new heights."""


@climb.command
def up(
        rope=Option("--rope", converter=number, arity="optional", descr="rope length in meters"),
        *,
        fooey=Switch("--fooey", descr="shout on the way up"),
):
    """Go up."""
    print("up", rope, fooey)


@climb.command
def down(*, fast=Switch("-f", "--fast", descr="skip the belay")):
    """Come back down."""
    print("down", fast)


if __name__ == '__main__':
    pprint(climb)
    invoke(climb)
