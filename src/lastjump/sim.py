""" Text mode driver for The Last Jump.

Reads commands from stdin. A number picks one of the listed choices, other
commands manage pursuits, saves and the session.
"""

import argparse
import contextlib
import logging
import sys
from collections.abc import Callable, Mapping, Sequence
from typing import TextIO

from lastjump import config, core, pursuits, util
from lastjump.content import Content
from lastjump.game import Game
from lastjump.handlers import default_registry
from lastjump.interface import TextPresenter
from lastjump.serialization.save_game import GameSaver

class UserError(Exception):
    pass

class Quit(Exception):
    pass

class CommandLoop:
    """ Maps player input onto the game. """

    def __init__(self, game:Game, presenter:TextPresenter, out:TextIO) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.game = game
        self.presenter = presenter
        self.out = out

    def command_list(self) -> Mapping[str, Callable[[Sequence[str]], None]]:
        def toggle(args:Sequence[str]) -> None:
            if len(args) != 2 or args[1] not in ("on", "off"):
                raise UserError("usage: toggle <pursuit> on|off")
            self._configure(lambda gs: pursuits.set_enabled(gs, args[0], args[1] == "on"))

        def select(args:Sequence[str]) -> None:
            if len(args) != 2:
                raise UserError("usage: select <pursuit> <option>")
            def set_option(gs:core.Gamestate) -> None:
                if not pursuits.set_option(gs, args[0], args[1]):
                    raise UserError(f'{args[1]} is not available for {args[0]}')
            self._configure(set_option)

        def set_value(args:Sequence[str]) -> None:
            if len(args) != 2:
                raise UserError("usage: set <pursuit> <number>")
            try:
                value = float(args[1])
            except ValueError:
                raise UserError(f'{args[1]} is not a number')
            self._configure(lambda gs: self.out.write(f'{args[0]} set to {pursuits.set_value(gs, args[0], value):g}\n'))

        def done(args:Sequence[str]) -> None:
            if self.presenter.week_continuation is None:
                raise UserError("the week hasn't ended")
            self.presenter.resume_week()

        def save(args:Sequence[str]) -> None:
            if len(args) != 1 or not args[0].isdigit():
                raise UserError("usage: save <slot>")
            try:
                self.out.write(f'saved to {self.game.save(int(args[0]))}\n')
            except ValueError as e:
                raise UserError(str(e))

        def load(args:Sequence[str]) -> None:
            if len(args) != 1:
                raise UserError("usage: load <slot>|autosave")
            if args[0] != "autosave" and not args[0].isdigit():
                raise UserError("usage: load <slot>|autosave")
            slot = None if args[0] == "autosave" else int(args[0])
            try:
                exists = self.game.saver is not None and self.game.saver.exists(slot)
            except ValueError as e:
                raise UserError(str(e))
            if not exists:
                raise UserError(f'nothing saved in {args[0]}')
            self.presenter.week_continuation = None
            self.game.load(slot)

        def slots(args:Sequence[str]) -> None:
            if self.game.saver is None:
                raise UserError("saving is disabled")
            for save_game in self.game.saver.list_save_slots():
                name = "autosave" if save_game.is_autosave else f'slot {save_game.slot}'
                if save_game.exists:
                    self.out.write(f'{name}: {save_game.character_name}, week {save_game.week}, {save_game.save_date}\n')
                else:
                    self.out.write(f'{name}: empty\n')

        def stats(args:Sequence[str]) -> None:
            player = self.game.gamestate.player
            if player is None:
                raise UserError("no player yet")
            for stat_id, value in player.stats.items():
                definition = self.game.content.stats.get(stat_id)
                if definition is None or definition.display:
                    self.out.write(f'{definition.name if definition else stat_id}: {value:g}\n')

        def quit(args:Sequence[str]) -> None:
            raise Quit()

        return {
            "toggle": toggle,
            "select": select,
            "set": set_value,
            "done": done,
            "save": save,
            "load": load,
            "slots": slots,
            "stats": stats,
            "quit": quit,
        }

    def _configure(self, fn:Callable[[core.Gamestate], None]) -> None:
        if self.presenter.week_continuation is None:
            raise UserError("pursuits are configured between weeks")
        try:
            fn(self.game.gamestate)
        except ValueError as e:
            raise UserError(str(e))
        self.presenter.render_pursuits(self.game.gamestate)

    def pick(self, number:int) -> None:
        session = self.game.creation.active
        if session is not None and not session.completed:
            options = session.available_options()
            if not 1 <= number <= len(options):
                raise UserError(f'pick 1 to {len(options)}')
            self.game.choose_creation_option(number-1)
            return
        if self.presenter.week_continuation is not None:
            raise UserError("configure pursuits, then \"done\"")
        choices = self.presenter.choices
        if not 1 <= number <= len(choices):
            raise UserError(f'pick 1 to {len(choices)}')
        choice = choices[number-1]
        if choice.action_cost > self.game.gamestate.actions_remaining:
            raise UserError("not enough actions left")
        self.game.handle_choice(choice)

    def execute(self, line:str) -> None:
        parts = line.split()
        if not parts:
            return
        if parts[0].isdigit():
            self.pick(int(parts[0]))
            return
        commands = self.command_list()
        if parts[0] not in commands:
            raise UserError(f'unknown command {parts[0]}, try one of {", ".join(commands)}')
        commands[parts[0]](parts[1:])

    def run(self, lines:TextIO) -> None:
        for line in lines:
            try:
                self.execute(line)
            except UserError as e:
                self.out.write(f'{e}\n')
            except Quit:
                break
            self.out.write("> ")
            self.out.flush()

def main() -> None:
    with contextlib.ExitStack() as context_stack:
        logging.basicConfig(
                format="%(asctime)s %(name)-12s %(levelname)-8s %(message)s",
                filename="/tmp/lastjump.log",
                filemode="w",
                level=logging.INFO
        )
        # send warnings to the logger
        logging.captureWarnings(True)

        parser = argparse.ArgumentParser(description="The Last Jump, a weekly life sim")
        parser.add_argument("-c", "--config", nargs="?", type=str, default=None,
                help="toml file with settings overriding the defaults")
        parser.add_argument("-s", "--seed", nargs="?", type=int, default=None,
                help="random seed for a new game")
        parser.add_argument("-l", "--load", nargs="?", type=str, default=None,
                help="slot number or \"autosave\" to continue from")
        parser.add_argument("-n", "--name", nargs="?", type=str, default=None,
                help="the player's name in a new game")
        args = parser.parse_args()

        if args.config:
            config_file = context_stack.enter_context(open(args.config, "rt"))
            config.load_config(config_file)

        handlers = default_registry()
        content = Content.load(handlers)
        presenter = TextPresenter(sys.stdout)
        game = Game(content, presenter, handlers=handlers, seed=args.seed, saver=GameSaver())

        if args.load is not None:
            game.load(None if args.load == "autosave" else int(args.load))
        else:
            game.new_game(args.name)

        loop = CommandLoop(game, presenter, sys.stdout)
        sys.stdout.write("> ")
        sys.stdout.flush()
        loop.run(sys.stdin)

        counter_str = "\n".join(map(lambda x: f'{str(x[0])}:\t{x[1]}', zip(list(core.Counters), game.gamestate.counters)))
        logging.info(f'counters:\n{counter_str}')
        logging.info(f'week:\t{game.gamestate.week}')
        logging.info("done.")

if __name__ == "__main__":
    main()
