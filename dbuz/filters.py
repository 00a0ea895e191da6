from typing import List, Sequence

from dbuz.models import Event, ExactPath, Interface, MatchRule, Member, PathPrefix

WILDCARD_SUFFIX = "/*"


def build_rules(path: str, name: str) -> List[MatchRule]:
    """
    Turn a path and a name expression into the match rules to register.

    :param path: Object path, or ``<path>/*`` to also match everything beneath it.
                 Empty means no path filtering.
    :param name: ``<interface>.<member>`` or a bare ``<member>``. Empty means no
                 interface/member filtering.
    :return: Rules in registration order: path, member, interface.
    """
    rules: List[MatchRule] = []

    # path, either wildcard or verbatim
    if path:
        if path.endswith(WILDCARD_SUFFIX):
            rules.append(PathPrefix(path=path[: -len(WILDCARD_SUFFIX)]))
        else:
            rules.append(ExactPath(path=path))

    if name:
        sections = name.split(".")

        # last section is the signal member
        rules.append(Member(name=sections[-1]))

        # previous sections are the interface
        if len(sections) > 1:
            rules.append(Interface(name=".".join(sections[:-1])))

    return rules


def matches(rules: Sequence[MatchRule], event: Event) -> bool:
    """An event passes when every rule accepts it; no rules accept everything."""
    return all(rule.matches(event) for rule in rules)
