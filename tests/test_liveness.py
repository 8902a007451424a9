from dfa.liveness import analyze_function, analyze_program, postorder, render_liveness


WHILE_SRC = (
    "int w(int n) {\n"
    "    int s;\n"
    "    s = 0;\n"
    "    while (n > 0) {\n"
    "        s = s + n;\n"
    "        n = n - 1;\n"
    "    }\n"
    "    return s;\n"
    "}\n"
)


def live(fn, res, bid):
    for b in fn.blocks.values():
        if b.id == bid:
            return res.live_in[b.key], res.live_out[b.key]
    raise KeyError(bid)


def naive_solve(fn):
    """Round-robin iteration until nothing changes."""
    live_in = {k: set() for k in fn.blocks}
    live_out = {k: set() for k in fn.blocks}
    changed = True
    while changed:
        changed = False
        for k, b in fn.blocks.items():
            if fn.is_sentinel(k):
                continue
            out = set()
            for s in b.succs:
                out |= live_in[s]
            new_in = b.uses | (out - b.defs)
            if out != live_out[k] or new_in != live_in[k]:
                live_out[k], live_in[k] = out, new_in
                changed = True
    return live_in, live_out


class TestScenarios:
    def test_straight_line(self, cfg):
        fn = cfg("int f(){ int x; x = 1; return x; }").functions["f"]
        res = analyze_function(fn)
        b = fn.block(fn.block(fn.entry).succs[0])
        assert b.uses == {"x"} and b.defs == {"x"}
        assert res.live_out[b.key] == set()
        assert res.live_in[b.key] == {"x"}

    def test_if_else_join(self, cfg, helpers):
        src = (
            "int h(int c) {\n"
            "    int a;\n"
            "    if (c) { a = 1; } else { a = 2; }\n"
            "    return a;\n"
            "}\n"
        )
        fn = cfg(src).functions["h"]
        res = analyze_function(fn)
        then_b, else_b = helpers.by_id(fn, "h_B1"), helpers.by_id(fn, "h_B3")
        assert then_b.succs == else_b.succs
        join = fn.block(then_b.succs[0])
        assert join.id == "h_B2"
        assert "a" in res.live_in[join.key]
        assert "a" in res.live_out[then_b.key]
        assert "a" in res.live_out[else_b.key]
        assert live(fn, res, "h_B1")[0] == set()
        assert live(fn, res, "h_B0") == ({"c"}, set())

    def test_while_loop(self, cfg, helpers):
        fn = cfg(WHILE_SRC).functions["w"]
        cond = helpers.by_id(fn, "w_B1")
        assert len(cond.succs) == 2
        body, follow = helpers.by_id(fn, "w_B2"), helpers.by_id(fn, "w_B3")
        assert cond.succs == [body.key, follow.key]
        assert body.succs == [cond.key]

        res = analyze_function(fn)
        assert live(fn, res, "w_B0") == ({"n"}, {"n", "s"})
        assert live(fn, res, "w_B1") == ({"n", "s"}, {"n", "s"})
        assert live(fn, res, "w_B2") == ({"n", "s"}, {"n", "s"})
        assert live(fn, res, "w_B3") == ({"s"}, set())

    def test_for_loop(self, cfg):
        src = (
            "int s(int n) {\n"
            "    int i;\n"
            "    int t;\n"
            "    t = 0;\n"
            "    for (i = 0; i < n; i = i + 1) {\n"
            "        t = t + i;\n"
            "    }\n"
            "    return t;\n"
            "}\n"
        )
        fn = cfg(src).functions["s"]
        res = analyze_function(fn)
        assert live(fn, res, "s_B0") == ({"n"}, {"i", "n", "t"})
        assert live(fn, res, "s_B1") == ({"i", "n", "t"}, {"i", "n", "t"})
        assert live(fn, res, "s_B2") == ({"i", "n", "t"}, {"i", "n", "t"})
        assert live(fn, res, "s_B3") == ({"t"}, set())


class TestSolver:
    def test_fixed_point_equations(self, cfg, comprehensive_src):
        prog = cfg(comprehensive_src)
        for fn in prog.functions.values():
            res = analyze_function(fn)
            for k, b in fn.blocks.items():
                if fn.is_sentinel(k):
                    continue
                expected_out = set()
                for s in b.succs:
                    expected_out |= res.live_in[s]
                assert res.live_out[k] == expected_out
                assert res.live_in[k] == b.uses | (res.live_out[k] - b.defs)

    def test_matches_round_robin(self, cfg, comprehensive_src):
        prog = cfg(comprehensive_src)
        for fn in prog.functions.values():
            res = analyze_function(fn)
            live_in, live_out = naive_solve(fn)
            assert res.live_in == live_in
            assert res.live_out == live_out

    def test_sentinels_stay_empty(self, cfg):
        fn = cfg("int f(int a) { return a; }").functions["f"]
        res = analyze_function(fn)
        assert fn.block(fn.entry).defs == {"a"}
        assert res.live_in[fn.entry] == set() and res.live_out[fn.entry] == set()
        assert res.live_in[fn.exit] == set()

    def test_iterations_counted(self, cfg):
        fn = cfg(WHILE_SRC).functions["w"]
        res = analyze_function(fn)
        assert res.iterations >= len(fn.blocks) - 2

    def test_postorder(self, cfg):
        fn = cfg(WHILE_SRC).functions["w"]
        got = [fn.block(k).id for k in postorder(fn)]
        assert got == ["w_B2", "w_exit", "w_B3", "w_B1", "w_B0", "w_entry"]


class TestOutput:
    def test_render_liveness(self, cfg):
        prog = cfg(WHILE_SRC + "int f(){ int x; x = 1; return x; }\n")
        text = render_liveness(prog, analyze_program(prog))
        assert text == (
            "B0-IN: n\n"
            "B0-OUT: n, s\n"
            "B1-IN: n, s\n"
            "B1-OUT: n, s\n"
            "B2-IN: n, s\n"
            "B2-OUT: n, s\n"
            "B3-IN: s\n"
            "B3-OUT: ;\n"
            "B0-IN: x\n"
            "B0-OUT: ;\n"
        )
