#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU General Public License as published by
#    the Free Software Foundation, either version 3 of the License, or
#    (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU General Public License for more details.
#
#    You should have received a copy of the GNU General Public License
#    along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""
Validation rules attached to a model through its ``validations`` attribute:

    class Post(Object):
        fields = ('title', 'body')
        validations = (
            validates_presence_of('title'),
            validates_length_of('body', maximum=140),
        )

Rules only read attribute values; they never touch the network.
"""

import numbers
import re


class Errors(dict):
    '''Validation messages keyed by field name'''

    def __missing__(self, field):
        return []

    def add(self, field, message):
        self.setdefault(field, []).append(message)

    def full_messages(self):
        return ['%s %s' % (field, message)
                for field, messages in self.items()
                for message in messages]


def is_blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class Validation(object):
    message = 'is invalid'
    skip_blank = True

    def __init__(self, *fields, **kw):
        self.fields = fields
        self.message = kw.pop('message', None) or self.message
        if kw:
            raise TypeError('Unexpected options %s' % ', '.join(sorted(kw)))

    def validate(self, instance, errors):
        for field in self.fields:
            value = instance.get(field)
            if self.skip_blank and is_blank(value):
                continue
            if not self.check(value):
                errors.add(field, self.message)

    def check(self, value):
        raise NotImplementedError("check must be overridden")

    def __repr__(self):
        return '<%s %s>' % (type(self).__name__, ', '.join(self.fields))


class PresenceValidation(Validation):
    message = "can't be blank"
    skip_blank = False

    def check(self, value):
        return not is_blank(value)


class LengthValidation(Validation):

    def __init__(self, field, minimum=None, maximum=None, message=None):
        super(LengthValidation, self).__init__(field, message=message)
        self.custom_message = message
        self.minimum = minimum
        self.maximum = maximum

    def validate(self, instance, errors):
        field = self.fields[0]
        value = instance.get(field)
        if value is None:
            return
        if not hasattr(value, '__len__'):
            errors.add(field, self.custom_message or 'is invalid')
            return
        length = len(value)
        if self.minimum is not None and length < self.minimum:
            errors.add(field, self.custom_message or
                       'is too short (minimum is %d characters)' % self.minimum)
        elif self.maximum is not None and length > self.maximum:
            errors.add(field, self.custom_message or
                       'is too long (maximum is %d characters)' % self.maximum)


class FormatValidation(Validation):

    def __init__(self, field, pattern, message=None):
        super(FormatValidation, self).__init__(field, message=message)
        self.pattern = re.compile(pattern)

    def check(self, value):
        return isinstance(value, str) and self.pattern.search(value) is not None


class InclusionValidation(Validation):
    message = 'is not included in the list'

    def __init__(self, field, choices, message=None):
        super(InclusionValidation, self).__init__(field, message=message)
        self.choices = tuple(choices)

    def check(self, value):
        return value in self.choices


class NumericalityValidation(Validation):
    message = 'is not a number'

    def __init__(self, field, only_integer=False, message=None):
        super(NumericalityValidation, self).__init__(field, message=message)
        self.only_integer = only_integer

    def check(self, value):
        if isinstance(value, bool):
            return False
        if self.only_integer:
            return isinstance(value, numbers.Integral)
        return isinstance(value, numbers.Number)


def validates_presence_of(*fields, **kw):
    return PresenceValidation(*fields, **kw)


def validates_length_of(field, minimum=None, maximum=None, message=None):
    return LengthValidation(field, minimum=minimum, maximum=maximum, message=message)


def validates_format_of(field, pattern, message=None):
    return FormatValidation(field, pattern, message=message)


def validates_inclusion_of(field, choices, message=None):
    return InclusionValidation(field, choices, message=message)


def validates_numericality_of(field, only_integer=False, message=None):
    return NumericalityValidation(field, only_integer=only_integer, message=message)
