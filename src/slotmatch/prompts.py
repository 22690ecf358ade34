"""Ranking prompts.

Both builders are pure string templating: the same input always yields the
same prompt, and empty candidate lists still produce a well-formed prompt.
"""

from __future__ import annotations

import json

HOST_RELEVANCE = """\
You are provided with details about a host and their associated meetings.

Host profession: {profession}

Analyze the relevance of each meeting for the host based on its description. \
Relevance is a score out of 10 that represents how suitable the meeting is for the host's profession.

Meetings to analyze:
{meetings}

Your task:
- Assign a relevance score (0-10) to each meeting.
- Output only a JSON array in the following format, ordered from most to least relevant:
  [
    {{ "id": number, "relevance": number }},
    ...
  ]

Strictly adhere to this format and do not include any additional text, explanations, \
or commentary outside the JSON output.
"""

GUEST_MATCH = """\
You are matching a guest's request against the hosts in a scheduling system and their \
available meeting slots. The request may only partly fit; match it to the most relevant \
host professions and slot descriptions as best you can.

Guest's requirements:
{text}

Hosts and their available slots:
{hosts}

Relevance of a slot is determined by:
1. How well the slot's title and description match the guest's requirements.
2. How well the host's profession aligns with the guest's requirements.

Your task:
Return only a JSON array listing EVERY slot above, ordered from best to worst match, \
using the following structure:
[
  {{ "slotId": number, "hostId": number }},
  ...
]

Never omit a slot, even when the match is weak.
Strictly follow this format and do not include any additional text or explanation.
"""


def _quote(value: object) -> str:
    return json.dumps("" if value is None else str(value), ensure_ascii=False)


def build_host_relevance_prompt(profession: str, meetings: list[dict]) -> str:
    """Prompt asking for ``[{id, relevance}]`` ordered by fit to *profession*."""
    lines = [f"ID: {m['id']}, Description: {_quote(m.get('description'))}" for m in meetings]
    return HOST_RELEVANCE.format(
        profession=_quote(profession),
        meetings="\n".join(lines) if lines else "(no meetings)",
    )


def build_guest_match_prompt(text: str, hosts: list[dict]) -> str:
    """Prompt asking for every slot as ``[{slotId, hostId}]`` ordered by fit to *text*."""
    listing = [
        {
            "hostId": h["id"],
            "name": h.get("name", ""),
            "profession": h.get("profession", ""),
            "slots": [
                {
                    "slotId": s["id"],
                    "title": s.get("title", ""),
                    "description": s.get("description", ""),
                    "startTime": s.get("start_time", ""),
                    "endTime": s.get("end_time", ""),
                }
                for s in h.get("slots", [])
            ],
        }
        for h in hosts
    ]
    return GUEST_MATCH.format(
        text=_quote(text),
        hosts=json.dumps(listing, indent=2, ensure_ascii=False),
    )
