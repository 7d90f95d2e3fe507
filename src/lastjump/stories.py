""" Storylines: chapter state machines that react to the gamestate.

Each chapter may declare a failure transition and an advance transition,
each guarded by a condition. Failure is checked first and wins when both
hold. Chapters with an objective result are terminal: reaching one
completes the storyline, runs its success or failure handler and effects
once and freezes the storyline where it is.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from lastjump import core, conditions, effects, util
from lastjump.handlers import HandlerContext, HandlerRegistry

ON_ENTER = "on_enter"
ALWAYS = "always"
NEVER = "never"

class ChapterDefinition:
    def __init__(self, chapter_id:str, text:Optional[str]=None, show_text:str=ON_ENTER) -> None:
        self.chapter_id = chapter_id
        self.text = text
        self.show_text = show_text
        self.advance_when:Optional[conditions.Condition] = None
        self.advance_to:Optional[str] = None
        self.fail_when:Optional[conditions.Condition] = None
        self.fail_to:Optional[str] = None
        self.objective_result:Optional[str] = None
        self.success_handler:Optional[str] = None
        self.failure_handler:Optional[str] = None
        self.success_effects:list[dict[str, Any]] = []
        self.failure_effects:list[dict[str, Any]] = []

class StoryDefinition:
    def __init__(self, story_id:str, title:str, chapters:Mapping[str, ChapterDefinition], initial_chapter:Optional[str]=None) -> None:
        self.story_id = story_id
        self.title = title
        self.chapters = dict(chapters)
        if initial_chapter is None:
            initial_chapter = next(iter(self.chapters))
        self.initial_chapter = initial_chapter

def load_story(story_id:str, d:Mapping[str, Any]) -> StoryDefinition:
    chapters:dict[str, ChapterDefinition] = {}
    for chapter_id, c in d.get("chapters", {}).items():
        record_id = f'{story_id}:{chapter_id}'
        show_text = util.camel_to_snake(c.get("show_text", ON_ENTER))
        if show_text not in (ON_ENTER, ALWAYS, NEVER):
            raise core.ContentError(record_id, f'unknown show_text {show_text}')
        chapter = ChapterDefinition(chapter_id, c.get("text"), show_text)
        if "advance_when" in c:
            chapter.advance_when = conditions.load_criteria(c["advance_when"])
        chapter.advance_to = c.get("advance_to")
        if "fail_when" in c:
            chapter.fail_when = conditions.load_criteria(c["fail_when"])
        chapter.fail_to = c.get("fail_to")
        chapter.objective_result = c.get("objective_result")
        if chapter.objective_result not in (None, core.Storyline.SUCCESS, core.Storyline.FAILURE):
            raise core.ContentError(record_id, f'unknown objective result {chapter.objective_result}')
        chapter.success_handler = c.get("success_handler")
        chapter.failure_handler = c.get("failure_handler")
        chapter.success_effects = effects.normalize(c.get("success_effects"))
        chapter.failure_effects = effects.normalize(c.get("failure_effects"))
        chapters[chapter_id] = chapter

    if not chapters:
        raise core.ContentError(story_id, "story has no chapters")
    initial_chapter = d.get("initial_chapter")
    for target in [initial_chapter] + [x for c in chapters.values() for x in (c.advance_to, c.fail_to)]:
        if target is not None and target not in chapters:
            raise core.ContentError(story_id, f'references unknown chapter {target}')
    return StoryDefinition(story_id, d.get("title", story_id), chapters, initial_chapter)

class StoryManager:
    def __init__(self, stories:Mapping[str, StoryDefinition], handlers:HandlerRegistry) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.stories = stories
        self.handlers = handlers

    def chapter(self, storyline:core.Storyline) -> Optional[ChapterDefinition]:
        story = self.stories.get(storyline.story_id)
        if story is None:
            return None
        return story.chapters.get(storyline.chapter)

    def evaluate_storylines(self, gamestate:core.Gamestate, context:Optional[HandlerContext]=None) -> list[str]:
        """ one transition pass over every storyline, then objective checks

        returns any text produced by objective completion effects.
        """
        for storyline in list(gamestate.storylines.values()):
            if storyline.completed:
                continue
            chapter = self.chapter(storyline)
            if chapter is None:
                continue

            if chapter.fail_when is not None and chapter.fail_to is not None:
                if chapter.fail_when.evaluate(gamestate):
                    self.logger.info(f'{storyline} failed to {chapter.fail_to}')
                    gamestate.advance_chapter(storyline.story_id, chapter.fail_to)
                    continue

            if chapter.advance_when is not None and chapter.advance_to is not None:
                if chapter.advance_when.evaluate(gamestate):
                    self.logger.info(f'{storyline} advanced to {chapter.advance_to}')
                    gamestate.advance_chapter(storyline.story_id, chapter.advance_to)

        return self.check_objective_completions(gamestate, context)

    def check_objective_completions(self, gamestate:core.Gamestate, context:Optional[HandlerContext]=None) -> list[str]:
        if context is None:
            context = HandlerContext()
        texts = []
        for storyline in list(gamestate.storylines.values()):
            if storyline.completed:
                continue
            chapter = self.chapter(storyline)
            if chapter is None or chapter.objective_result is None:
                continue

            storyline.completed = True
            storyline.result = chapter.objective_result
            gamestate.counters[core.Counters.STORY_COMPLETIONS] += 1
            self.logger.info(f'{storyline.story_id} completed with {storyline.result}')

            if storyline.result == core.Storyline.SUCCESS:
                handler, completion_effects = chapter.success_handler, chapter.success_effects
            else:
                handler, completion_effects = chapter.failure_handler, chapter.failure_effects

            if handler is not None:
                result = self.handlers.call(handler, gamestate, chapter, context)
                if result is not None and result.text:
                    texts.append(result.text)
            if completion_effects:
                text = effects.execute(completion_effects, gamestate, effects.EffectContext(interpolate=context.interpolate))
                if text:
                    texts.append(text)
        return texts

    def collect_narrative_text(self, gamestate:core.Gamestate) -> list[str]:
        """ chapter text to show now, clears every storyline's entry marker """
        texts = []
        for storyline in gamestate.storylines.values():
            chapter = self.chapter(storyline)
            if chapter is None or not chapter.text:
                continue
            if chapter.show_text == ALWAYS or (chapter.show_text == ON_ENTER and storyline.entered_chapter):
                texts.append(chapter.text)

        for storyline in gamestate.storylines.values():
            storyline.entered_chapter = False
        return texts
