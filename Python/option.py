"""
An option holds either one value or nothing.

`Some(value)` and `Nothing()` are the only two kinds of option. `Some(None)`
is a present value that happens to be None, which is not the same as
`Nothing()`: the first says "there is a value", the second "there is none".

Every callback-taking operation comes in two flavours. The plain one runs
its callback as non-suspendable code (calling `suspend()` from inside fails),
the `_suspendable` one lets the callback suspend the enclosing continuation.
"""

from copy import deepcopy

from continuation import forbid_suspend


class EmptyValueError(LookupError):
    def __str__(self):
        return "Nothing has no value"


class Singleton:
    """Class with a single instance"""

    def __new__(cls):
        obj = object.__new__(cls)
        cls.__new__ = lambda _: obj
        return obj


_SEALED = False


class Option:
    """Base of the two option kinds. Further subclasses are refused."""

    __slots__ = ()

    def __init_subclass__(cls, **kwargs):
        if _SEALED:
            raise TypeError("Option is sealed: only Some and Nothing exist")
        super().__init_subclass__(**kwargs)

    def __setattr__(self, *args, **kwargs):
        raise TypeError("'{}' object does not support item assignment".format(type(self).__name__))

    def or_else(self, supplier):
        return self.or_else_suspendable(forbid_suspend(supplier))

    def or_else_null(self):
        return self.or_else_suspendable(_some_null)

    def map(self, mapper):
        return self.map_suspendable(forbid_suspend(mapper))

    def flat_map(self, mapper):
        return self.flat_map_suspendable(forbid_suspend(mapper))

    def filter(self, predicate):
        return self.filter_suspendable(forbid_suspend(predicate))

    def combine(self, other, zipper):
        return self.combine_suspendable(other, forbid_suspend(zipper))

    def accept(self, action):
        self.accept_suspendable(forbid_suspend(action))


class Some(Option, tuple):
    """A present value, possibly None"""

    __slots__ = ()

    def __new__(cls, value):
        return tuple.__new__(cls, (value,))

    @staticmethod
    def exists():
        return True

    def get(self):
        return self[0]

    def or_else_suspendable(self, supplier):
        return self

    def map_suspendable(self, mapper):
        return Some(mapper(self[0]))

    def flat_map_suspendable(self, mapper):
        return mapper(self[0])

    def filter_suspendable(self, predicate):
        return self if predicate(self[0]) else NOTHING

    def combine_suspendable(self, other, zipper):
        if other.exists():
            return Some(zipper(self[0], other.get()))
        return NOTHING

    def accept_suspendable(self, action):
        action(self[0])

    def __bool__(self):
        return True

    def __eq__(self, other):
        return type(other) is Some and tuple.__eq__(self, other)

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((Some, self[0]))

    def __deepcopy__(self, memodict={}):
        return Some(deepcopy(self[0], memo=memodict))

    def __reduce__(self):
        return Some, (self[0],)

    def __repr__(self):
        return 'Some({!r})'.format(self[0])


class Nothing(Option, Singleton):
    """The absent value"""

    __slots__ = ()

    @staticmethod
    def exists():
        return False

    @staticmethod
    def get():
        raise EmptyValueError()

    @staticmethod
    def or_else_suspendable(supplier):
        return supplier()

    def map_suspendable(self, _mapper):
        return self

    def flat_map_suspendable(self, _mapper):
        return self

    def filter_suspendable(self, _predicate):
        return self

    def combine_suspendable(self, _other, _zipper):
        return self

    @staticmethod
    def accept_suspendable(_action):
        pass

    @staticmethod
    def __bool__():
        return False

    @staticmethod
    def __len__():
        return 0

    @staticmethod
    def __iter__():
        return iter(())

    def __deepcopy__(self, memodict={}):
        return self

    def __reduce__(self):
        return Nothing, ()

    def __repr__(self):
        return 'Nothing'


_SEALED = True

NOTHING = Nothing()


def some(value):
    return Some(value)


def none():
    return NOTHING


def _some_null():
    return Some(None)
