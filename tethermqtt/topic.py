"""
Topic filter matching for TetherMQTT.

Compiles an MQTT topic filter into an anchored regular expression once, so
matching an incoming topic is a single regex call. Supports MQTT wildcards:
- '+' matches exactly one level
- '#' matches zero or more trailing levels

Special rule: topics starting with '$' are not matched by wildcards
at the first level.
"""

import re

from .utils import validate_topic_filter


def compile_filter(topic_filter):
    """
    Build the regular expression for a topic filter.

    Every literal level is escaped. '+' becomes one capture group that
    cannot cross a '/', a trailing '#' becomes one capture group for the
    remaining levels (None when the topic ends at the parent level).

    Args:
        topic_filter: str, validated topic filter

    Returns:
        (compiled_regex, has_wildcards) tuple
    """
    levels = topic_filter.split('/')
    parts = []
    has_wildcards = False

    for index, level in enumerate(levels):
        is_first_level = (index == 0)

        if level == '#':
            has_wildcards = True
            if is_first_level:
                parts.append('(?!\\$)(.*)')
            else:
                # 'a/#' also matches 'a' itself
                parts[-1] = parts[-1] + '(?:/' + '(.*))?'
            break

        if level == '+':
            has_wildcards = True
            parts.append(('(?!\\$)' if is_first_level else '') + '([^/]*)')
        else:
            parts.append(re.escape(level))

        if index < len(levels) - 1 and levels[index + 1] != '#':
            parts[-1] = parts[-1] + '/'

    return re.compile('^' + ''.join(parts) + '$', re.DOTALL), has_wildcards


class TopicPattern:
    """
    A compiled topic filter.

    '+' also matches an empty level: 'a/+/c' matches 'a//c' and captures
    ''. Filters are matched as MQTT brokers match them, not by a stricter
    one-or-more-characters rule.

    Example:
        pattern = TopicPattern('home/+/temperature')
        pattern.match('home/kitchen/temperature')   # ['kitchen']
        pattern.match('home/kitchen/sensor/temperature')   # None
    """
    __slots__ = ('pattern', 'regex', 'has_wildcards')

    def __init__(self, pattern):
        """
        Args:
            pattern: str topic filter, may contain '+' or '#'

        Raises:
            MQTTConfigError: if the filter is malformed
        """
        validate_topic_filter(pattern)
        self.pattern = pattern
        self.regex, self.has_wildcards = compile_filter(pattern)

    def __repr__(self):
        return 'TopicPattern(%r)' % self.pattern

    def match(self, topic):
        """
        Match a concrete topic name against this filter.

        Args:
            topic: str or bytes topic name

        Returns:
            list: captured wildcard levels in order (empty for literal
                  filters), or None if the topic does not match. A '#' that
                  matched zero levels captures ''.
        """
        if isinstance(topic, bytes):
            topic = topic.decode('utf-8')
        m = self.regex.match(topic)
        if m is None:
            return None
        return ['' if group is None else group for group in m.groups()]

    def matches(self, topic):
        """True if the topic matches this filter."""
        return self.match(topic) is not None
