import sys
import traceback
import unittest
from unittest import mock

import pygame

from cell_store import CellStore
from constants import CHAIN_TOO_DEEP_MARKER, CIRCULAR_REFERENCE_MARKER, HEADER_WIDTH
from coordinates import cell_key, column_letters, decode_label, encode_label
from dependency_graph import DependencyGraph
from display_cache import DisplayCache
from expression import EvaluationError, evaluate, format_value, quote_text
from formula_evaluator import substitution_literal
from grid_engine import GridEngine
from gridwizard import GRID_TOP, GridView
from main import read_int_option
from selection import SelectionTracker
from viewport import Viewport


def stack_depth():
    return len(traceback.extract_stack())


class TestCoordinates(unittest.TestCase):

    def test_column_letters(self):
        self.assertEqual(column_letters(0), 'A')
        self.assertEqual(column_letters(25), 'Z')
        self.assertEqual(column_letters(26), 'AA')
        self.assertEqual(column_letters(51), 'AZ')
        self.assertEqual(column_letters(701), 'ZZ')
        self.assertEqual(column_letters(702), 'AAA')

    def test_encode_label(self):
        self.assertEqual(encode_label(0, 0), 'A1')
        self.assertEqual(encode_label(6, 2), 'C7')
        self.assertEqual(encode_label(9999, 9999), 'NTP10000')

    def test_decode_label(self):
        self.assertEqual(decode_label('A1'), (0, 0))
        self.assertEqual(decode_label('AA1'), (0, 26))
        self.assertEqual(decode_label('C7'), (6, 2))

    def test_round_trip(self):
        for row in (0, 1, 9, 99, 9999, 123456):
            for col in (0, 1, 25, 26, 27, 51, 52, 701, 702, 9999, 18278):
                self.assertEqual(decode_label(encode_label(row, col)), (row, col))

    def test_decode_rejects_malformed(self):
        for label in ('A', '1', '', 'a1', '1A', 'A1B', 'A-1', ' A1', 'A0'):
            self.assertIsNone(decode_label(label), label)

    def test_decode_does_not_check_grid_extent(self):
        self.assertEqual(decode_label('ZZZZ99999'), (99998, 475253))

    def test_cell_key_is_injective(self):
        self.assertNotEqual(cell_key(1, 11), cell_key(11, 1))
        self.assertNotEqual(cell_key(1, 11), cell_key(111, 1))
        self.assertEqual(cell_key(3, 4), cell_key(3, 4))


class TestCellStore(unittest.TestCase):

    def setUp(self):
        self.writes = []
        self.store = CellStore(invalidate=lambda row, col: self.writes.append((row, col)))

    def test_unwritten_cell_is_empty(self):
        self.assertEqual(self.store.get_raw(5, 5), '')

    def test_set_then_get(self):
        for text in ('hello', '=A1+1', '', '  spaced  '):
            self.store.set_raw(2, 3, text)
            self.assertEqual(self.store.get_raw(2, 3), text)

    def test_write_calls_invalidation(self):
        self.store.set_raw(1, 2, 'x')
        self.assertEqual(self.writes, [(1, 2)])

    def test_populated_skips_empty(self):
        self.store.set_raw(0, 0, 'a')
        self.store.set_raw(4, 7, '')
        self.store.set_raw(12, 3, '=1')
        self.assertEqual(sorted(self.store.populated()), [(0, 0, 'a'), (12, 3, '=1')])
        self.assertEqual(len(self.store), 2)


class TestDisplayCache(unittest.TestCase):

    def test_put_get_clear(self):
        cache = DisplayCache()
        self.assertIsNone(cache.get('0:0'))
        cache.put('0:0', '6')
        cache.put('0:1', 'Division by zero', error=True)
        self.assertEqual(cache.get('0:0').text, '6')
        self.assertFalse(cache.get('0:0').error)
        self.assertTrue(cache.get('0:1').error)
        cache.clear_all()
        self.assertEqual(len(cache), 0)

    def test_discard(self):
        cache = DisplayCache()
        cache.put('a', '1')
        cache.put('b', '2')
        cache.discard(['a', 'missing'])
        self.assertNotIn('a', cache)
        self.assertIn('b', cache)


class TestExpression(unittest.TestCase):

    def test_arithmetic(self):
        self.assertEqual(evaluate('1+2*3'), 7)
        self.assertEqual(evaluate('(1+2)*3'), 9)
        self.assertEqual(evaluate('7/2'), 3.5)
        self.assertEqual(evaluate('10-4-3'), 3)
        self.assertEqual(evaluate('-3+5'), 2)
        self.assertEqual(evaluate('2--3'), 5)
        self.assertEqual(evaluate(' 1.5e3 '), 1500.0)
        self.assertEqual(evaluate('.5*4'), 2.0)

    def test_strings(self):
        self.assertEqual(evaluate('"a"+"b"'), 'ab')
        self.assertEqual(evaluate("'x'+1"), 'x1')
        self.assertEqual(evaluate('2+"px"'), '2px')
        self.assertEqual(evaluate('"total: "+(1+2)'), 'total: 3')

    def test_quote_text_reads_back(self):
        text = 'say "hi" \\ ok'
        self.assertEqual(evaluate(quote_text(text)), text)

    def test_format_value(self):
        self.assertEqual(format_value(6), '6')
        self.assertEqual(format_value(6.0), '6')
        self.assertEqual(format_value(3.5), '3.5')
        self.assertEqual(format_value(0.1 + 0.2), '0.30000000000000004')
        self.assertEqual(format_value('abc'), 'abc')

    def test_division_by_zero(self):
        with self.assertRaises(EvaluationError) as ctx:
            evaluate('1/0')
        self.assertEqual(ctx.exception.message, 'Division by zero')

    def test_type_mismatch(self):
        with self.assertRaises(EvaluationError):
            evaluate('"a"*2')
        with self.assertRaises(EvaluationError):
            evaluate('-"a"')

    def test_malformed(self):
        for source in ('', '1+', '2 3', '(1+2', '1+2)', '*3', '"open'):
            with self.assertRaises(EvaluationError, msg=source):
                evaluate(source)

    def test_error_names_position(self):
        with self.assertRaises(EvaluationError) as ctx:
            evaluate('2 3')
        self.assertEqual(ctx.exception.message, "Unexpected '3' at position 3")

    def test_no_code_execution(self):
        for source in ("__import__('os')", 'open("x")', '1 if 1 else 2', '[1]', '2**3'):
            with self.assertRaises(EvaluationError, msg=source):
                evaluate(source)

    def test_nesting_limit(self):
        with self.assertRaises(EvaluationError) as ctx:
            evaluate('(' * 500 + '1' + ')' * 500)
        self.assertEqual(ctx.exception.message, 'Expression nested too deeply')
        self.assertEqual(evaluate('(' * 50 + '1' + ')' * 50), 1)

    def test_overflow(self):
        with self.assertRaises(EvaluationError):
            evaluate('1e308*10')
        with self.assertRaises(EvaluationError):
            evaluate('1e999')

    def test_only_ascii_digits_are_numbers(self):
        for source in ('²', '1²+1', '1e²', '١+1'):
            with self.assertRaises(EvaluationError, msg=source):
                evaluate(source)
        with self.assertRaises(EvaluationError) as ctx:
            evaluate('1²')
        self.assertEqual(ctx.exception.message, "Unexpected character '²' at position 2")


class TestSubstitutionLiteral(unittest.TestCase):

    def test_numbers_stay_numbers(self):
        self.assertEqual(substitution_literal('5'), '5')
        self.assertEqual(substitution_literal(' 2.5 '), '2.5')
        self.assertEqual(substitution_literal('-3'), '(-3)')

    def test_empty_is_zero(self):
        self.assertEqual(substitution_literal(''), '0')
        self.assertEqual(substitution_literal('   '), '0')

    def test_text_is_quoted(self):
        self.assertEqual(substitution_literal('abc'), '"abc"')
        self.assertEqual(substitution_literal('inf'), '"inf"')
        self.assertEqual(substitution_literal('²'), '"²"')


class TestFormulaEvaluation(unittest.TestCase):

    def setUp(self):
        self.engine = GridEngine()

    def test_literal_displays_verbatim(self):
        for text in ('hello', '42', ' padded ', 'A1+B1', ''):
            self.engine.set_label('C3', text)
            self.assertEqual(self.engine.display_label('C3'), text)

    def test_reference_arithmetic(self):
        self.engine.set_label('A1', '5')
        self.engine.set_label('B1', '=A1+1')
        self.assertEqual(self.engine.display_label('B1'), '6')

    def test_formula_chain(self):
        self.engine.set_label('A1', '2')
        self.engine.set_label('A2', '=A1*3')
        self.engine.set_label('A3', '=A2+A1')
        self.assertEqual(self.engine.display_label('A3'), '8')

    def test_text_references(self):
        self.engine.set_label('A1', 'abc')
        self.engine.set_label('B1', '=A1+"!"')
        self.assertEqual(self.engine.display_label('B1'), 'abc!')
        self.engine.set_label('A1', 'say "hi"')
        self.engine.set_label('B1', '=A1')
        self.assertEqual(self.engine.display_label('B1'), 'say "hi"')

    def test_negative_literal_reference(self):
        self.engine.set_label('A1', '-3')
        self.engine.set_label('B1', '=2-A1')
        self.assertEqual(self.engine.display_label('B1'), '5')

    def test_empty_reference_is_zero(self):
        self.engine.set_label('B1', '=C3*2+1')
        self.assertEqual(self.engine.display_label('B1'), '1')

    def test_malformed_reference_is_zero(self):
        self.engine.set_label('B1', '=A0+1')
        self.assertEqual(self.engine.display_label('B1'), '1')

    def test_out_of_range_reference(self):
        self.engine.set_label('B1', '=ZZZ20000+1')
        self.assertEqual(self.engine.display_label('B1'), '1')
        self.engine.set_raw(19999, 18277, '41')
        self.assertEqual(self.engine.display_label('B1'), '42')

    def test_self_reference(self):
        self.engine.set_label('A1', '=A1')
        self.assertEqual(self.engine.display_label('A1'), CIRCULAR_REFERENCE_MARKER)

    def test_mutual_reference(self):
        self.engine.set_label('A1', '=B1')
        self.engine.set_label('B1', '=A1')
        self.assertEqual(self.engine.display_label('A1'), 'Circular reference')
        self.assertEqual(self.engine.display_label('B1'), 'Circular reference')

    def test_mutual_reference_from_either_side(self):
        self.engine.set_label('A1', '=B1+1')
        self.engine.set_label('B1', '=A1+1')
        self.assertEqual(self.engine.display_label('B1'), 'Circular reference')
        self.assertEqual(self.engine.display_label('A1'), 'Circular reference')

    def test_same_cell_twice_is_reported_circular(self):
        self.engine.set_label('A1', '=A1+A1')
        self.assertEqual(self.engine.display_label('A1'), 'Circular reference')
        self.engine.set_label('A1', '4')
        self.engine.set_label('B1', '=A1+A1')
        self.assertEqual(self.engine.display_label('B1'), 'Circular reference')

    def test_diamond_is_not_circular(self):
        self.engine.set_label('D1', '1')
        self.engine.set_label('B1', '=D1')
        self.engine.set_label('C1', '=D1+1')
        self.engine.set_label('A1', '=B1+C1')
        self.assertEqual(self.engine.display_label('A1'), '3')

    def test_cell_depending_on_cycle(self):
        self.engine.set_label('A1', '=B1')
        self.engine.set_label('B1', '=A1')
        self.engine.set_label('C1', '=A1+1')
        self.assertEqual(self.engine.display_label('C1'), 'Circular reference')

    def test_evaluation_errors(self):
        self.engine.set_label('A1', '=1/0')
        self.assertEqual(self.engine.display_label('A1'), 'Division by zero')
        self.assertTrue(self.engine.is_error(0, 0))
        self.engine.set_label('A1', '=')
        self.assertEqual(self.engine.display_label('A1'), 'Empty expression')
        self.engine.set_label('A1', '=)(')
        self.assertEqual(self.engine.display_label('A1'), "Unexpected ')' at position 1")

    def test_lowercase_reference_is_not_a_reference(self):
        self.engine.set_label('A1', '1')
        self.engine.set_label('B1', '=a1+1')
        self.assertEqual(self.engine.display_label('B1'), "Unexpected character 'a' at position 1")

    def test_errors_propagate(self):
        self.engine.set_label('A1', '=1/0')
        self.engine.set_label('B1', '=A1+1')
        self.assertEqual(self.engine.display_label('B1'), 'Division by zero')

    def test_text_error_does_not_propagate_as_text(self):
        self.engine.set_label('A1', '=1/0')
        self.engine.display_label('A1')
        self.engine.set_label('C9', 'unrelated')
        self.engine.display_label('A1')
        self.engine.set_label('B1', '=A1+"x"')
        self.assertEqual(self.engine.display_label('B1'), 'Division by zero')

    def test_cache_invalidated_by_edit(self):
        self.engine.set_label('A1', '1')
        self.engine.set_label('B1', '=A1')
        self.assertEqual(self.engine.display_label('B1'), '1')
        self.engine.set_label('A1', '2')
        self.assertEqual(self.engine.display_label('B1'), '2')

    def test_any_edit_clears_whole_cache(self):
        self.engine.set_label('B1', '=1+1')
        self.engine.set_label('E5', 'text')
        self.engine.display_label('B1')
        self.engine.display_label('E5')
        self.assertEqual(len(self.engine.cache), 2)
        self.engine.set_raw(5000, 5000, 'far away')
        self.assertEqual(len(self.engine.cache), 0)

    def test_cache_hit_skips_evaluation(self):
        self.engine.set_label('A1', '1')
        self.engine.set_label('B1', '=A1*10')
        self.assertEqual(self.engine.display_label('B1'), '10')
        # Write behind the engine's back: the memoized value is served.
        self.engine.store.invalidate = None
        self.engine.set_label('A1', '5')
        self.assertEqual(self.engine.display_label('B1'), '10')

    def test_long_chain_within_limit(self):
        self.engine.set_raw(0, 0, '1')
        for row in range(1, 150):
            self.engine.set_raw(row, 0, f'={encode_label(row - 1, 0)}+1')
        self.assertEqual(self.engine.display_text(149, 0), '150')

    def test_chain_longer_than_limit_evaluates(self):
        engine = GridEngine(max_depth=10)
        engine.set_raw(0, 0, '1')
        for row in range(1, 15):
            engine.set_raw(row, 0, f'={encode_label(row - 1, 0)}')
        self.assertEqual(engine.display_text(14, 0), '1')
        self.assertFalse(engine.is_error(14, 0))

    def test_chain_result_independent_of_read_order(self):
        results = []
        for first in (None, 7, 13):
            engine = GridEngine(max_depth=10)
            engine.set_raw(0, 0, '1')
            for row in range(1, 15):
                engine.set_raw(row, 0, f'={encode_label(row - 1, 0)}+1')
            if first is not None:
                engine.display_text(first, 0)
            results.append(engine.display_text(14, 0))
        self.assertEqual(results, ['15', '15', '15'])

    def test_long_cycle_is_circular_from_any_cell(self):
        for start in (0, 15, 29):
            engine = GridEngine(max_depth=10)
            for row in range(30):
                engine.set_raw(row, 0, f'={encode_label((row + 1) % 30, 0)}')
            self.assertEqual(engine.display_text(start, 0), CIRCULAR_REFERENCE_MARKER)
            for row in range(30):
                self.assertEqual(engine.display_text(row, 0), CIRCULAR_REFERENCE_MARKER)

    def test_cold_chain_beyond_default_depth(self):
        self.engine.set_raw(0, 0, '1')
        for row in range(1, 300):
            self.engine.set_raw(row, 0, f'={encode_label(row - 1, 0)}+1')
        self.assertEqual(self.engine.display_text(299, 0), '300')

    def test_exhausted_stack_retries_shorter_passes(self):
        self.engine.set_raw(0, 0, '1')
        for row in range(1, 61):
            self.engine.set_raw(row, 0, f'={encode_label(row - 1, 0)}+1')
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(stack_depth() + 150)
        try:
            result = self.engine.display_text(60, 0)
        finally:
            sys.setrecursionlimit(limit)
        self.assertEqual(result, '61')
        self.assertFalse(self.engine.is_error(60, 0))

    def test_exhausted_stack_reports_error(self):
        self.engine.set_label('A1', '=' + '(' * 20 + '1' + ')' * 20)
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(stack_depth() + 30)
        try:
            result = self.engine.display_text(0, 0)
        finally:
            sys.setrecursionlimit(limit)
        self.assertEqual(result, CHAIN_TOO_DEEP_MARKER)
        self.assertTrue(self.engine.is_error(0, 0))

    def test_uppercase_exponent_reads_as_reference(self):
        self.engine.set_label('A1', '=1E5+1')
        self.assertEqual(self.engine.display_label('A1'), '11')
        self.engine.set_label('A1', '=1e5+1')
        self.assertEqual(self.engine.display_label('A1'), '100001')

    def test_display_never_raises(self):
        for source in ('=', '=+', '=((', '="', '=A1B2C3', "=__import__('os')", '=1e999',
                       '=²', '=1²+1', '=1e²'):
            self.engine.set_label('Z9', source)
            self.assertIsInstance(self.engine.display_label('Z9'), str)

    def test_unicode_digit_in_referenced_cell_is_text(self):
        self.engine.set_label('A1', '²')
        self.engine.set_label('B1', '=A1+"!"')
        self.assertEqual(self.engine.display_label('B1'), '²!')

    def test_set_label_rejects_bad_label(self):
        with self.assertRaises(ValueError):
            self.engine.set_label('a1', '1')

    def test_populated(self):
        self.engine.set_label('B2', '=1')
        self.engine.set_label('A1', 'x')
        self.engine.set_label('A1', '')
        self.assertEqual(list(self.engine.populated()), [(1, 1, '=1')])


class TestDependencyInvalidation(unittest.TestCase):

    def setUp(self):
        self.engine = GridEngine(invalidation='dependents')

    def test_only_dependents_are_cleared(self):
        self.engine.set_label('A1', '1')
        self.engine.set_label('B1', '=A1')
        self.engine.set_label('C1', '=B1+1')
        self.engine.set_label('D1', '=7')
        self.assertEqual(self.engine.display_label('C1'), '2')
        self.assertEqual(self.engine.display_label('D1'), '7')
        self.engine.set_label('A1', '2')
        self.assertNotIn(cell_key(0, 1), self.engine.cache)
        self.assertNotIn(cell_key(0, 2), self.engine.cache)
        self.assertIn(cell_key(0, 3), self.engine.cache)
        self.assertEqual(self.engine.display_label('C1'), '3')

    def test_fixing_a_cycle(self):
        self.engine.set_label('A1', '=B1')
        self.engine.set_label('B1', '=A1')
        self.assertEqual(self.engine.display_label('A1'), 'Circular reference')
        self.engine.set_label('B1', '4')
        self.assertEqual(self.engine.display_label('A1'), '4')

    def test_changed_references_are_tracked(self):
        self.engine.set_label('A1', '1')
        self.engine.set_label('A2', '10')
        self.engine.set_label('B1', '=A1')
        self.assertEqual(self.engine.display_label('B1'), '1')
        self.engine.set_label('B1', '=A2')
        self.assertEqual(self.engine.display_label('B1'), '10')
        self.engine.set_label('A2', '20')
        self.assertEqual(self.engine.display_label('B1'), '20')

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            GridEngine(invalidation='lazy')

    def test_graph_affected_by(self):
        graph = DependencyGraph()
        graph.record('b', {'a'})
        graph.record('c', {'b'})
        graph.record('d', {'x'})
        self.assertEqual(graph.affected_by('a'), {'a', 'b', 'c'})
        graph.record('c', set())
        self.assertEqual(graph.affected_by('a'), {'a', 'b'})


class TestSelection(unittest.TestCase):

    def test_select_and_clear(self):
        tracker = SelectionTracker()
        self.assertIsNone(tracker.current())
        self.assertEqual(tracker.label(), '')
        tracker.select(6, 2)
        self.assertEqual(tracker.current(), (6, 2))
        self.assertEqual(tracker.label(), 'C7')
        tracker.select(0, 0)
        self.assertEqual(tracker.current(), (0, 0))
        tracker.clear()
        self.assertIsNone(tracker.current())

    def test_selection_does_not_affect_evaluation(self):
        engine = GridEngine()
        engine.set_label('A1', '=2*3')
        engine.select(0, 0)
        self.assertEqual(engine.current_selection(), (0, 0))
        self.assertEqual(engine.display_label('A1'), '6')
        engine.deselect()
        self.assertIsNone(engine.current_selection())


class TestViewport(unittest.TestCase):

    def setUp(self):
        self.viewport = Viewport(800, 600, total_rows=10000, total_cols=10000,
                                 cell_width=100, cell_height=30, overscan=0)

    def test_initial_window(self):
        self.assertEqual(self.viewport.visible_rows(), range(0, 20))
        self.assertEqual(self.viewport.visible_columns(), range(0, 8))

    def test_scrolled_window(self):
        self.viewport.scroll_to(250, 45)
        self.assertEqual(self.viewport.visible_rows(), range(1, 22))
        self.assertEqual(self.viewport.visible_columns(), range(2, 11))
        self.assertEqual(self.viewport.cell_at(10, 10), (1, 2))

    def test_overscan(self):
        viewport = Viewport(800, 600, cell_width=100, cell_height=30, overscan=1)
        viewport.scroll_to(250, 45)
        self.assertEqual(viewport.visible_rows(), range(0, 23))

    def test_scroll_is_clamped(self):
        self.viewport.scroll_to(10 ** 9, 10 ** 9)
        self.assertEqual(self.viewport.scroll_x, 999200)
        self.assertEqual(self.viewport.scroll_y, 299400)
        self.assertEqual(self.viewport.visible_rows(), range(9980, 10000))
        self.viewport.scroll_by(-(10 ** 9), 0)
        self.assertEqual(self.viewport.scroll_x, 0)

    def test_cell_at_outside(self):
        self.assertIsNone(self.viewport.cell_at(-1, 5))
        self.assertIsNone(self.viewport.cell_at(5, 600))
        small = Viewport(800, 600, total_rows=5, total_cols=3, cell_width=100, cell_height=30)
        self.assertIsNone(small.cell_at(350, 10))
        self.assertEqual(small.visible_rows(), range(0, 5))

    def test_scroll_into_view(self):
        self.viewport.scroll_into_view(50, 20)
        self.assertEqual((self.viewport.scroll_x, self.viewport.scroll_y), (1300, 930))
        self.assertEqual(self.viewport.cell_rect(50, 20), (700, 570, 100, 30))
        self.viewport.scroll_into_view(0, 0)
        self.assertEqual((self.viewport.scroll_x, self.viewport.scroll_y), (0, 0))


def key_event(key, mod=0):
    return pygame.event.Event(pygame.KEYDOWN, key=key, mod=mod)


def text_event(text):
    return pygame.event.Event(pygame.TEXTINPUT, text=text)


class TestGridView(unittest.TestCase):

    def setUp(self):
        # Create a mock font object (this won't actually be used for rendering)
        mock_font = lambda: None
        mock_font.size = lambda s: (len(s) * 10, 24)  # Assume each character is 10 pixels wide
        mock_font.get_height = lambda: 24
        self.view = GridView(mock_font, 800, 600)
        self.engine = self.view.engine

    def type_text(self, text):
        for char in text:
            self.view.handle_event(text_event(char))

    def test_initial_selection(self):
        self.assertEqual(self.engine.current_selection(), (0, 0))
        self.assertFalse(self.view.editing)

    def test_click_selects_cell(self):
        click = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(HEADER_WIDTH + 150, GRID_TOP + 40))
        self.view.handle_event(click)
        self.assertEqual(self.engine.current_selection(), (1, 1))

    def test_click_on_header_is_ignored(self):
        click = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(10, GRID_TOP + 40))
        self.view.handle_event(click)
        self.assertEqual(self.engine.current_selection(), (0, 0))

    def test_type_and_commit_formula(self):
        self.type_text('=1+2')
        self.assertTrue(self.view.editing)
        self.assertEqual(self.view.get_display_value(0, 0), '=1+2')
        self.view.handle_event(key_event(pygame.K_RETURN))
        self.assertFalse(self.view.editing)
        self.assertEqual(self.engine.get_raw(0, 0), '=1+2')
        self.assertEqual(self.view.get_display_value(0, 0), '3')
        self.assertEqual(self.engine.current_selection(), (1, 0))

    def test_click_commits_edit(self):
        self.type_text('7')
        click = pygame.event.Event(pygame.MOUSEBUTTONDOWN, button=1, pos=(HEADER_WIDTH + 250, GRID_TOP + 5))
        self.view.handle_event(click)
        self.assertEqual(self.engine.get_raw(0, 0), '7')
        self.assertEqual(self.engine.current_selection(), (0, 2))

    def test_escape_cancels_edit(self):
        self.engine.set_raw(0, 0, 'keep')
        self.type_text('replace')
        self.view.handle_event(key_event(pygame.K_ESCAPE))
        self.assertFalse(self.view.editing)
        self.assertEqual(self.engine.get_raw(0, 0), 'keep')

    def test_f2_edits_existing_content(self):
        self.engine.set_raw(0, 0, '=2*3')
        self.view.handle_event(key_event(pygame.K_F2))
        self.assertEqual(self.view.edit_buffer, '=2*3')
        self.view.handle_event(key_event(pygame.K_BACKSPACE))
        self.type_text('4')
        self.view.handle_event(key_event(pygame.K_RETURN))
        self.assertEqual(self.engine.display_text(0, 0), '8')

    def test_undo_redo(self):
        self.type_text('ab')
        self.view.handle_event(key_event(pygame.K_z, pygame.KMOD_LCTRL))
        self.assertEqual(self.view.edit_buffer, 'a')
        self.view.handle_event(key_event(pygame.K_y, pygame.KMOD_LCTRL))
        self.assertEqual(self.view.edit_buffer, 'ab')

    def test_shift_selection_delete(self):
        self.type_text('abcd')
        self.view.handle_event(key_event(pygame.K_LEFT, pygame.KMOD_LSHIFT))
        self.view.handle_event(key_event(pygame.K_LEFT, pygame.KMOD_LSHIFT))
        self.assertEqual(self.view.selected_text(), 'cd')
        self.view.handle_event(key_event(pygame.K_DELETE))
        self.assertEqual(self.view.edit_buffer, 'ab')
        self.assertEqual(self.view.edit_cursor_pos, 2)

    def test_navigation_is_clamped(self):
        self.view.handle_event(key_event(pygame.K_UP))
        self.view.handle_event(key_event(pygame.K_LEFT))
        self.assertEqual(self.engine.current_selection(), (0, 0))
        self.view.handle_event(key_event(pygame.K_DOWN))
        self.view.handle_event(key_event(pygame.K_RIGHT))
        self.assertEqual(self.engine.current_selection(), (1, 1))

    def test_page_down_scrolls_selection_into_view(self):
        for _ in range(3):
            self.view.handle_event(key_event(pygame.K_PAGEDOWN))
        row, _ = self.engine.current_selection()
        self.assertEqual(row, 3 * self.view.page_rows())
        self.assertGreater(self.view.viewport.scroll_y, 0)
        self.assertIn(row, self.view.viewport.visible_rows())

    def test_mouse_wheel_scrolls(self):
        self.view.handle_event(pygame.event.Event(pygame.MOUSEWHEEL, x=0, y=-1))
        self.assertEqual(self.view.viewport.scroll_y, 90)
        self.view.handle_event(pygame.event.Event(pygame.MOUSEWHEEL, x=0, y=5))
        self.assertEqual(self.view.viewport.scroll_y, 0)

    def test_escape_deselects(self):
        self.view.handle_event(key_event(pygame.K_ESCAPE))
        self.assertIsNone(self.engine.current_selection())
        self.type_text('ignored')
        self.assertFalse(self.view.editing)
        self.assertEqual(self.view.formula_bar_text(), '')

    def test_formula_bar(self):
        self.engine.set_raw(0, 0, '=1+2')
        self.assertEqual(self.view.formula_bar_text(), 'A1  =1+2  ->  3')
        self.engine.set_raw(0, 0, 'plain')
        self.assertEqual(self.view.formula_bar_text(), 'A1  plain')

    def test_copy_paste_cell(self):
        self.engine.set_raw(0, 0, '=2*3')
        with mock.patch('gridwizard.pyperclip.copy') as copy:
            self.view.handle_event(key_event(pygame.K_c, pygame.KMOD_LCTRL))
        copy.assert_called_once_with('=2*3')
        self.view.handle_event(key_event(pygame.K_DOWN))
        with mock.patch('gridwizard.pyperclip.paste', return_value='=A1+1'):
            self.view.handle_event(key_event(pygame.K_v, pygame.KMOD_LCTRL))
        self.assertEqual(self.engine.display_text(1, 0), '7')

    def test_resize_updates_viewport(self):
        self.view.resize(1200, 900)
        self.assertEqual(self.view.viewport.width, 1200 - HEADER_WIDTH)
        self.assertEqual(self.view.viewport.height, 900 - GRID_TOP)


class TestMainOptions(unittest.TestCase):

    def test_read_int_option(self):
        self.assertEqual(read_int_option(['--rows', '50'], '--rows', 10), 50)
        self.assertEqual(read_int_option([], '--rows', 10), 10)

    def test_read_int_option_invalid(self):
        with mock.patch('builtins.print'):
            self.assertEqual(read_int_option(['--rows'], '--rows', 10), 10)
            self.assertEqual(read_int_option(['--rows', 'x'], '--rows', 10), 10)
            self.assertEqual(read_int_option(['--rows', '0'], '--rows', 10), 10)


if __name__ == '__main__':
    unittest.main()
