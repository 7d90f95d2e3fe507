""" Save slots and autosave.

A save file starts with a small header so slots can be listed without
reading the whole game:

    format version (2 bytes)
    save date (length prefixed iso timestamp)
    week (4 bytes)
    character name (length prefixed)

followed by a length prefixed msgpack body holding the gamestate, the id
counter and the random generator state.
"""

import datetime
import io
import os
import tempfile
import time
import logging
from typing import Any, Optional, TYPE_CHECKING

from lastjump import config, core, util
from lastjump.serialization import util as s_util

if TYPE_CHECKING:
    from lastjump.content import Content

FORMAT_VERSION = 1
AUTOSAVE = "autosave"

class SaveGame:
    """ What we know about a slot without loading it. """

    def __init__(self, slot:Optional[int], filename:str, exists:bool=False, version:int=0, save_date:Optional[datetime.datetime]=None, week:int=0, character_name:str="") -> None:
        # None is the autosave
        self.slot = slot
        self.filename = filename
        self.exists = exists
        self.version = version
        self.save_date = save_date
        self.week = week
        self.character_name = character_name

    @property
    def is_autosave(self) -> bool:
        return self.slot is None

    def __repr__(self) -> str:
        return f'SaveGame({self.slot}, {self.filename}, exists={self.exists}, week={self.week})'

class GameSaver:
    """ Writes and reads games in numbered slots plus an autosave. """

    def __init__(self, save_path:Optional[str]=None, slot_count:Optional[int]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.save_path = save_path if save_path is not None else config.Settings.saves.save_path
        self.slot_count = slot_count if slot_count is not None else config.Settings.saves.slot_count

    def slot_filename(self, slot:Optional[int]) -> str:
        if slot is None:
            return os.path.join(self.save_path, f'{AUTOSAVE}.ljsave')
        if not 1 <= slot <= self.slot_count:
            raise ValueError(f'no save slot {slot}, slots are 1 to {self.slot_count}')
        return os.path.join(self.save_path, f'save_{slot}.ljsave')

    def _save_metadata(self, gamestate:core.Gamestate, save_file:io.IOBase) -> int:
        bytes_written = 0
        bytes_written += s_util.int_to_f(FORMAT_VERSION, save_file, blen=2)
        bytes_written += s_util.to_len_pre_f(datetime.datetime.now().isoformat(), save_file)
        bytes_written += s_util.int_to_f(gamestate.week, save_file)
        player = gamestate.player
        bytes_written += s_util.to_len_pre_f(player.name if player is not None else "", save_file)
        return bytes_written

    def _load_metadata(self, save_file:io.IOBase, slot:Optional[int]=None, filename:str="") -> SaveGame:
        version = s_util.int_from_f(save_file, blen=2)
        if version > FORMAT_VERSION:
            raise ValueError(f'save format {version} is newer than {FORMAT_VERSION}')
        save_date = datetime.datetime.fromisoformat(s_util.from_len_pre_f(save_file))
        week = s_util.int_from_f(save_file)
        character_name = s_util.from_len_pre_f(save_file)
        return SaveGame(slot, filename, True, version, save_date, week, character_name)

    def autosave(self, gamestate:core.Gamestate) -> str:
        return self.save(gamestate, None)

    def save(self, gamestate:core.Gamestate, slot:Optional[int]) -> str:
        """ saves to slot, or the autosave if slot is None, returns the filename """
        save_filename = self.slot_filename(slot)
        self.logger.info(f'saving to {save_filename}...')
        start_time = time.perf_counter()
        os.makedirs(self.save_path, exist_ok=True)

        body:dict[str, Any] = {
            "next_id": gamestate.next_id,
            "state": gamestate.to_dict(),
            "random_state": s_util.random_state_to_str(gamestate.random),
        }

        bytes_written = 0
        # write next to the destination so the final rename stays on one filesystem
        with tempfile.NamedTemporaryFile("wb", dir=self.save_path, prefix=".tmp_", delete=False) as temp_save_file:
            save_file:io.IOBase = temp_save_file # type: ignore
            try:
                # metadata at the top for quick listing
                bytes_written += self._save_metadata(gamestate, save_file)
                bytes_written += s_util.msgpack_to_f(body, save_file)
            except Exception:
                temp_save_file.close()
                os.remove(temp_save_file.name)
                raise

        # move the temp file into its final home, so we only end up with good files
        os.replace(temp_save_file.name, save_filename)
        self.logger.info(f'saved {bytes_written}bytes to {save_filename} in {time.perf_counter()-start_time}s')
        return save_filename

    def load(self, content:"Content", slot:Optional[int]) -> core.Gamestate:
        save_filename = self.slot_filename(slot)
        self.logger.info(f'loading {save_filename}')
        with open(save_filename, "rb") as f:
            save_file:io.IOBase = f # type: ignore
            save_game = self._load_metadata(save_file, slot, save_filename)
            self.logger.debug(f'save from {save_game.save_date} at week {save_game.week}')
            body = s_util.msgpack_from_f(save_file)

        # older saves may lack any of these
        gamestate = core.Gamestate.from_dict(content, body.get("state", {}))
        if "next_id" in body:
            gamestate.next_id = max(gamestate.next_id, body["next_id"])
        if body.get("random_state"):
            gamestate.random = s_util.random_state_from_str(body["random_state"])
        self.logger.info("load complete")
        return gamestate

    def exists(self, slot:Optional[int]) -> bool:
        return os.path.exists(self.slot_filename(slot))

    def delete(self, slot:Optional[int]) -> bool:
        save_filename = self.slot_filename(slot)
        if not os.path.exists(save_filename):
            return False
        os.remove(save_filename)
        return True

    def list_save_slots(self) -> list[SaveGame]:
        """ every numbered slot, then the autosave, whether or not they exist """
        slots:list[Optional[int]] = list(range(1, self.slot_count+1))
        slots.append(None)
        save_games = []
        for slot in slots:
            filename = self.slot_filename(slot)
            if not os.path.exists(filename):
                save_games.append(SaveGame(slot, filename))
                continue
            try:
                with open(filename, "rb") as f:
                    save_games.append(self._load_metadata(f, slot, filename)) # type: ignore
            except (ValueError, UnicodeDecodeError) as e:
                self.logger.warning(f'unreadable save {filename}: {e}')
                save_games.append(SaveGame(slot, filename, exists=True))
        return save_games
