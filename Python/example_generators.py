from continuations import generator, for_each_reply, yield_
from stream import Stream


@generator
def fibonacci():
    a, b = 0, 1
    while True:
        yield_(a)
        a, b = b, a + b


def running_average():
    """Ring pipe: hands out the current average, is resumed with the next sample."""
    total, count = 0.0, 0
    sample = yield_(None)
    while sample is not None:
        total += sample
        count += 1
        sample = yield_(total / count)


def words(text):
    return Stream.of_iterable(text.split())


if __name__ == "__main__":
    fibonacci().filter(lambda n: n % 2 == 0).take(10).for_each(print)

    samples = iter([4, 8, 15, 16, 23, 42])

    def feed(average):
        if average is not None:
            print("average so far:", average)
        return next(samples, None)

    for_each_reply(running_average, feed)

    lines = Stream.of("the quick brown fox", "jumps over", "the lazy dog")
    longest = lines.flat_map(words).reduce(lambda a, b: a if len(a) >= len(b) else b)
    print("longest word:", longest.get())

    pairs = Stream.zip(Stream.of("a", "b", "c"), Stream.iterate(1, lambda n: n + 1), lambda k, v: (k, v))
    print(dict(pairs))
