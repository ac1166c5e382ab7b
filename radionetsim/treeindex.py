"""
Index arithmetic over an implicit nearly-complete binary search tree.

The tree over m nodes is never built. Its shape is fixed by m alone: all levels
are full except the last, whose missing leaves are packed to the right. The
nodes hold the values of a sorted sequence in inorder, so a binary search over
the sequence follows a root-to-leaf path of the tree. All functions are pure,
run in O(log m) time and O(1) space, and memoize nothing.

Two coordinate systems are provided.


Inorder (BSO) Family
--------------------
0-based heap indices (T[0] is the root, children of T[y] are T[2y+1] and
T[2y+2]) and 0-based inorder values 0..m-1. Used by sequence correction, which
ranks one tree level at a time.

    height(m), fullSize(h), missingLeaves(m), leftSize(m), rightSize(m)
        Tree shape.
    leftChildHeapIndex(y), rightChildHeapIndex(y), parentHeapIndex(y)
        Heap navigation.
    level(y), positionInLevel(y), heapIndexAt(level, pos), levelSize(m, l)
        Level coordinates.
    bso(m, x)
        Heap index of the node holding value x (alias valueAtHeapIndex).
    osb(m, y)
        Value held by heap index y (aliases heapIndexToValue, inorderValue).


Preorder/Postorder Family
-------------------------
1-based inorder values 1..m, 1-based heap (schedule) indices, 0 meaning NIL.
Used by the tournament ranking protocols: when the node at schedule index d
broadcasts in the d-th slot of a search, every searcher whose cursor equals d
is listening for exactly that node.

    h(m, i), g(m, i), lStar(m), alpha(m, i, j, k)
        Iterated heights and group layout for regrouping.
    root(m), leftChildValue(m, x), rightChildValue(m, x)
        Tree navigation by value.
    preorderIndex(m, x)
        Schedule index of value x.
    postorderToInorderValue(m, y)
        Value broadcast at schedule index y.


Notes
-----
The families describe the same tree: for 1 <= x <= m,
preorderIndex(m, x) == bso(m, x-1) + 1 and
postorderToInorderValue(m, y) == osb(m, y-1) + 1.
"""

###############################################################################
# Tree Shape
###############################################################################

def height(m:int)->int:
    """Number of levels of the tree with m nodes: ceil(log2(m+1))."""
    return max(m, 0).bit_length()

#-----------------------------------------------------------------------------#

def fullSize(h:int)->int:
    """Number of nodes of the full tree with h levels: 2^h - 1."""
    return (1 << max(h, 0)) - 1

#-----------------------------------------------------------------------------#

def missingLeaves(m:int)->int:
    """Leaves missing on the last level of the tree with m nodes."""
    return fullSize(height(m)) - m

#-----------------------------------------------------------------------------#

def leftSize(m:int)->int:
    """
    Size of the left subtree of the root in the tree with m nodes.

    The left subtree is full with height(m)-1 levels, except when more than
    half of the last level is missing. Then the surplus of missing leaves
    belongs to the left subtree as well.
    """

    if (m <= 1):
        return 0
    h1 = height(m)
    return fullSize(h1 - 1) - max(0, missingLeaves(m) - (1 << (h1 - 2)))

#-----------------------------------------------------------------------------#

def rightSize(m:int)->int:
    """Size of the right subtree of the root in the tree with m nodes."""
    if (m <= 0):
        return 0
    return m - 1 - leftSize(m)

###############################################################################
# Inorder (BSO) Family
###############################################################################

def leftChildHeapIndex(y:int)->int:
    """Heap index of the left child of T[y]."""
    return 2*y + 1

#-----------------------------------------------------------------------------#

def rightChildHeapIndex(y:int)->int:
    """Heap index of the right child of T[y]."""
    return 2*y + 2

#-----------------------------------------------------------------------------#

def parentHeapIndex(y:int)->int:
    """Heap index of the parent of T[y]. The root is its own parent."""
    if (y <= 0):
        return y
    return (y - 1) // 2

#-----------------------------------------------------------------------------#

def level(y:int)->int:
    """Level of T[y]: floor(log2(y+1)), 0 for the root."""
    return max(y + 1, 1).bit_length() - 1

#-----------------------------------------------------------------------------#

def positionInLevel(y:int)->int:
    """Position of T[y] within its level, counted from the left."""
    return y - fullSize(level(y))

#-----------------------------------------------------------------------------#

def heapIndexAt(lev:int, pos:int)->int:
    """Heap index of the node at position pos of level lev."""
    return fullSize(lev) + pos

#-----------------------------------------------------------------------------#

def levelSize(m:int, lev:int)->int:
    """
    Number of nodes on level lev of the tree with m nodes.


    Parameters
    ----------
    m : int
        Tree size.
    lev : int
        Level, 0 for the root.


    Returns
    -------
    size : int
        2^lev on full levels, 2^lev minus the missing leaves on the last
        level, and 0 for levels outside the tree.
    """

    h1 = height(m)
    if ((lev < 0) or (lev > h1 - 1)):
        return 0
    if (lev == h1 - 1):
        return (1 << lev) - missingLeaves(m)
    return 1 << lev

#-----------------------------------------------------------------------------#

def bso(m:int, x:int)->int:
    """
    Binary search ordering: heap index of the node holding value x.


    Parameters
    ----------
    m : int
        Tree size.
    x : int
        0-based inorder value.


    Returns
    -------
    y : int
        0-based heap index of value x. Values outside [0, m) are returned
        unchanged.


    Notes
    -----
    Walks from the root toward x, tracking the value of the visited node and
    the size of its subtree.
    """

    if ((x < 0) or (x >= m)):
        return x
    y = 0
    m1 = m
    x1 = leftSize(m)
    while (x1 != x):
        if (x < x1):
            y = leftChildHeapIndex(y)
            m1 = leftSize(m1)
            x1 = x1 - m1 + leftSize(m1)
        else:
            y = rightChildHeapIndex(y)
            m1 = rightSize(m1)
            x1 = x1 + leftSize(m1) + 1
    return y

#-----------------------------------------------------------------------------#

def osb(m:int, y:int)->int:
    """
    Inverse of bso(): value held by the node at heap index y.


    Parameters
    ----------
    m : int
        Tree size.
    y : int
        0-based heap index.


    Returns
    -------
    x : int
        0-based inorder value at T[y]. Indices outside [0, m) are returned
        unchanged.


    Notes
    -----
    The position of y within its level decides each turn on the way down: the
    left half of the level (within the current subtree) lies in the left
    subtree.
    """

    if ((y < 0) or (y >= m)):
        return y
    levy = level(y)
    pos = positionInLevel(y)
    half = (1 << levy) >> 1
    m1 = m
    x1 = leftSize(m)
    for _ in range(levy):
        if (pos < half):
            m1 = leftSize(m1)
            x1 = x1 - m1 + leftSize(m1)
        else:
            m1 = rightSize(m1)
            x1 = x1 + leftSize(m1) + 1
            pos -= half
        half >>= 1
    return x1

#-----------------------------------------------------------------------------#

valueAtHeapIndex = bso
heapIndexToValue = osb
inorderValue = osb

###############################################################################
# Preorder/Postorder Family
###############################################################################

def h(m:int, i:int)->int:
    """Iterated height: h(m,0) = m and h(m,i) = height(h(m,i-1))."""
    for _ in range(i):
        m = height(m)
    return m

#-----------------------------------------------------------------------------#

def g(m:int, i:int)->int:
    """Number of groups of size h(m,i) covering m elements."""
    x = h(m, i)
    if (x <= 0):
        return 0
    return (m + x - 1) // x

#-----------------------------------------------------------------------------#

def lStar(m:int)->int:
    """Smallest i with h(m,i) <= 2."""
    i = 0
    while (m > 2):
        m = height(m)
        i += 1
    return i

#-----------------------------------------------------------------------------#

def alpha(m:int, i:int, j:int, k:int)->int:
    """Global 1-based position of member k of group j at grouping level i."""
    return (j - 1) * h(m, i) + k

#-----------------------------------------------------------------------------#

def root(m:int)->int:
    """Value held by the root of the tree with m nodes."""
    return leftSize(m) + 1

#-----------------------------------------------------------------------------#

def _subtreeOf(m:int, x:int):
    """Walk to value x and return (x, size of its subtree), or None."""
    if ((x < 1) or (x > m)):
        return None
    m1 = m
    x1 = root(m)
    while (x1 != x):
        if (x < x1):
            m1 = leftSize(m1)
            x1 = x1 - m1 + root(m1) - 1
        else:
            m1 = rightSize(m1)
            x1 = x1 + root(m1)
    return x1, m1

#-----------------------------------------------------------------------------#

def leftChildValue(m:int, x:int)->int:
    """Value of the left child of value x, 0 if it has none."""
    node = _subtreeOf(m, x)
    if (node is None):
        return 0
    x1, m1 = node
    m1 = leftSize(m1)
    if (m1 > 0):
        return x1 - m1 + root(m1) - 1
    return 0

#-----------------------------------------------------------------------------#

def rightChildValue(m:int, x:int)->int:
    """Value of the right child of value x, 0 if it has none."""
    node = _subtreeOf(m, x)
    if (node is None):
        return 0
    x1, m1 = node
    m1 = rightSize(m1)
    if (m1 > 0):
        return x1 + root(m1)
    return 0

#-----------------------------------------------------------------------------#

def preorderIndex(m:int, x:int)->int:
    """
    Schedule (1-based heap) index of value x.


    Parameters
    ----------
    m : int
        Tree size.
    x : int
        1-based inorder value, 0 for NIL.


    Returns
    -------
    d : int
        Heap index with children 2d and 2d+1, 0 for NIL or values outside
        the tree.
    """

    if ((x < 1) or (x > m)):
        return 0
    d = 1
    m1 = m
    x1 = root(m)
    while (x1 != x):
        if (x < x1):
            d = 2*d
            m1 = leftSize(m1)
            x1 = x1 - m1 + root(m1) - 1
        else:
            d = 2*d + 1
            m1 = rightSize(m1)
            x1 = x1 + root(m1)
    return d

#-----------------------------------------------------------------------------#

def postorderToInorderValue(m:int, y:int)->int:
    """
    Value broadcast at schedule index y.


    Parameters
    ----------
    m : int
        Tree size.
    y : int
        1-based schedule index.


    Returns
    -------
    x : int
        1-based inorder value, 0 if y is outside 1..m.


    Notes
    -----
    The binary digits of y after the leading one spell the path from the
    root: 0 turns left, 1 turns right.
    """

    if ((y < 1) or (y > m)):
        return 0
    m1 = m
    x1 = root(m)
    for bit in range(y.bit_length() - 2, -1, -1):
        if ((y >> bit) & 1):
            m1 = rightSize(m1)
            x1 = x1 + root(m1)
        else:
            m1 = leftSize(m1)
            x1 = x1 - m1 + root(m1) - 1
    return x1

###############################################################################
