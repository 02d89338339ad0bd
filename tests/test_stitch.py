from whisperflow.decoding.stitch import find_overlap


def test_finds_repeated_tail():
    prev = [1, 2, 3, 4, 5, 6]
    curr = [4, 5, 6, 7, 8]

    prev_cut, curr_cut = find_overlap(prev, curr)

    assert (prev_cut, curr_cut) == (3, 0)
    assert prev[:prev_cut] + curr[curr_cut:] == [1, 2, 3, 4, 5, 6, 7, 8]


def test_match_starting_inside_window():
    prev = [10, 11, 12, 13]
    curr = [99, 12, 13, 14]
    # offset 2 aligns [11, 12, 13] with [99, 12, 13]; first match at position 1
    assert find_overlap(prev, curr, min_n_overlaps=2) == (2, 1)


def test_too_few_matches_is_not_an_overlap():
    assert find_overlap([1, 2, 3], [3, 9, 9]) is None


def test_first_maximum_wins_on_ties():
    prev = [1, 2, 1, 2]
    curr = [1, 2, 5, 5]
    # offsets 1 and 3 both match two positions
    assert find_overlap(prev, curr, min_n_overlaps=2) == (2, 0)


def test_search_limited_by_max_offsets():
    prev = [7, 8, 9, 0, 0, 0]
    curr = [7, 8, 9, 1, 1, 1]
    assert find_overlap(prev, curr) == (0, 0)
    assert find_overlap(prev, curr, max_n_offsets=3) is None


def test_empty_sequences():
    assert find_overlap([], [1, 2, 3]) is None
    assert find_overlap([1, 2, 3], []) is None
