"""
Hand-authored fallback question bank.

Used when the remote generator is unavailable or returns something
unusable. Each item carries a stable id so repeats can be tracked
across retakes.
"""
import random
from typing import Dict, List, Optional

from .models import Question, QuestionKind

QUESTION_BANK = [
    # JavaScript
    {
        "id": "fallback-js-1",
        "type": "mcq",
        "question": "What is the difference between let, const, and var in JavaScript?",
        "options": [
            "let and const have block scope, var has function scope",
            "They are identical in functionality",
            "var is the newest and most recommended",
            "const can be reassigned, let cannot"
        ],
        "correctAnswer": "let and const have block scope, var has function scope",
        "difficulty": "easy",
        "topic": "JavaScript"
    },
    {
        "id": "fallback-js-2",
        "type": "mcq",
        "question": "What is the difference between == and === in JavaScript?",
        "options": [
            "=== checks both value and type, == only checks value with type coercion",
            "They are identical in functionality",
            "== is more strict than ===",
            "=== is deprecated and should not be used"
        ],
        "correctAnswer": "=== checks both value and type, == only checks value with type coercion",
        "difficulty": "easy",
        "topic": "JavaScript"
    },
    {
        "id": "fallback-js-3",
        "type": "mcq",
        "question": "What does the \"this\" keyword refer to in JavaScript?",
        "options": ["Current function", "Global object", "Depends on context", "Previous function"],
        "correctAnswer": "Depends on context",
        "difficulty": "easy",
        "topic": "JavaScript"
    },
    {
        "id": "fallback-js-4",
        "type": "mcq",
        "question": "What is a closure in JavaScript?",
        "options": [
            "A type of loop",
            "A function with access to its outer scope",
            "A way to close functions",
            "An error handling mechanism"
        ],
        "correctAnswer": "A function with access to its outer scope",
        "difficulty": "medium",
        "topic": "JavaScript"
    },
    {
        "id": "fallback-js-5",
        "type": "mcq",
        "question": "What is the difference between call, apply, and bind?",
        "options": [
            "No difference",
            "Different syntax only",
            "Different ways to set the this context",
            "Only bind is useful"
        ],
        "correctAnswer": "Different ways to set the this context",
        "difficulty": "hard",
        "topic": "JavaScript"
    },
    {
        "id": "fallback-js-6",
        "type": "mcq",
        "question": "In what order do a resolved Promise callback and a setTimeout(fn, 0) callback run?",
        "options": [
            "The Promise callback runs first because microtasks drain before the next macrotask",
            "The setTimeout callback always runs first",
            "They run in parallel on different threads",
            "The order is random"
        ],
        "correctAnswer": "The Promise callback runs first because microtasks drain before the next macrotask",
        "difficulty": "hard",
        "topic": "JavaScript"
    },
    {
        "id": "fallback-js-7",
        "type": "coding",
        "question": "Write a function that removes duplicates from an array.",
        "correctAnswer": (
            "function removeDuplicates(arr) { return arr.filter((item, index) => "
            "arr.indexOf(item) === index); }"
        ),
        "difficulty": "easy",
        "topic": "JavaScript",
        "codeTemplate": "function removeDuplicates(arr) {\n  // Your code here\n}",
        "expectedOutput": ["input: [1, 2, 2, 3] -> output: [1, 2, 3]"]
    },
    {
        "id": "fallback-js-8",
        "type": "coding",
        "question": "Write a function that finds the maximum number in an array.",
        "correctAnswer": (
            "function findMax(arr) { let max = arr[0]; for (const value of arr) "
            "{ if (value > max) { max = value; } } return max; }"
        ),
        "difficulty": "easy",
        "topic": "JavaScript",
        "codeTemplate": "function findMax(arr) {\n  // Your code here\n}",
        "expectedOutput": ["input: [1, 5, 3, 9, 2] -> output: 9", "input: [10, 20, 5] -> output: 20"]
    },
    {
        "id": "fallback-js-9",
        "type": "coding",
        "question": "Write a function that reverses a string without using built-in reverse methods.",
        "correctAnswer": (
            "function reverseString(str) { let reversed = ''; for (let i = str.length - 1; "
            "i >= 0; i--) { reversed += str[i]; } return reversed; }"
        ),
        "difficulty": "easy",
        "topic": "JavaScript",
        "codeTemplate": "function reverseString(str) {\n  // Your code here\n  return '';\n}",
        "expectedOutput": ["input: 'hello' -> output: 'olleh'", "input: 'world' -> output: 'dlrow'"]
    },
    {
        "id": "fallback-js-10",
        "type": "coding",
        "question": "Write a function that checks if a string is a palindrome.",
        "correctAnswer": (
            "function isPalindrome(str) { const cleaned = str.toLowerCase().replace(/[^a-z0-9]/g, ''); "
            "return cleaned === cleaned.split('').reverse().join(''); }"
        ),
        "difficulty": "medium",
        "topic": "JavaScript",
        "codeTemplate": "function isPalindrome(str) {\n  // Your code here\n}",
        "expectedOutput": ["input: 'racecar' -> output: true", "input: 'hello' -> output: false"]
    },
    {
        "id": "fallback-js-11",
        "type": "coding",
        "question": "Write a debounce function that delays calling fn until wait milliseconds have passed since the last call.",
        "correctAnswer": (
            "function debounce(fn, wait) { let timer; return function (...args) { "
            "clearTimeout(timer); timer = setTimeout(() => fn.apply(this, args), wait); }; }"
        ),
        "difficulty": "hard",
        "topic": "JavaScript",
        "codeTemplate": "function debounce(fn, wait) {\n  // Your code here\n}"
    },
    {
        "id": "fallback-js-12",
        "type": "voice",
        "question": "Explain what a closure is and give an everyday use for one.",
        "correctAnswer": (
            "A closure is a function that keeps access to variables from its outer scope "
            "after the outer function returns, used for private state, counters and callbacks."
        ),
        "difficulty": "medium",
        "topic": "JavaScript",
        "voiceEnabled": True
    },
    {
        "id": "fallback-js-13",
        "type": "voice",
        "question": "Describe how the JavaScript event loop handles asynchronous code.",
        "correctAnswer": (
            "The event loop takes callbacks from the task queue when the call stack is empty; "
            "promise microtasks run before the next task, so asynchronous work never blocks the stack."
        ),
        "difficulty": "hard",
        "topic": "JavaScript",
        "voiceEnabled": True
    },
    {
        "id": "fallback-js-14",
        "type": "voice",
        "question": "What is the difference between null and undefined?",
        "correctAnswer": (
            "undefined means a variable was declared but never assigned a value, "
            "null is an explicit assignment meaning no value."
        ),
        "difficulty": "easy",
        "topic": "JavaScript",
        "voiceEnabled": True
    },
    # React
    {
        "id": "fallback-react-1",
        "type": "mcq",
        "question": "What is the primary purpose of useEffect in React?",
        "options": [
            "To manage component state",
            "To handle side effects like API calls, subscriptions, or DOM manipulation",
            "To create components",
            "To style components"
        ],
        "correctAnswer": "To handle side effects like API calls, subscriptions, or DOM manipulation",
        "difficulty": "easy",
        "topic": "React"
    },
    {
        "id": "fallback-react-2",
        "type": "mcq",
        "question": "How are props passed to a React component?",
        "options": [
            "As attributes on the JSX element",
            "Through a global variable",
            "By calling setState on the child",
            "Through CSS classes"
        ],
        "correctAnswer": "As attributes on the JSX element",
        "difficulty": "easy",
        "topic": "React"
    },
    {
        "id": "fallback-react-3",
        "type": "mcq",
        "question": "What is the Virtual DOM in React and how does it improve performance?",
        "options": [
            "A virtual representation of the real DOM that enables efficient updates",
            "A backup copy of the DOM stored in memory",
            "A debugging tool for React applications",
            "A server-side rendering technique"
        ],
        "correctAnswer": "A virtual representation of the real DOM that enables efficient updates",
        "difficulty": "medium",
        "topic": "React"
    },
    {
        "id": "fallback-react-4",
        "type": "mcq",
        "question": "What are React Hooks and why were they introduced?",
        "options": [
            "Functions that let you use state and lifecycle features in functional components",
            "A way to create class components more easily",
            "A debugging tool for React applications",
            "A method for handling API calls"
        ],
        "correctAnswer": "Functions that let you use state and lifecycle features in functional components",
        "difficulty": "medium",
        "topic": "React"
    },
    {
        "id": "fallback-react-5",
        "type": "mcq",
        "question": "Which hook would you use to optimize expensive calculations in React?",
        "options": ["useState", "useEffect", "useMemo", "useRef"],
        "correctAnswer": "useMemo",
        "difficulty": "medium",
        "topic": "React"
    },
    {
        "id": "fallback-react-6",
        "type": "mcq",
        "question": "What is the difference between useCallback and useMemo?",
        "options": [
            "No difference",
            "useCallback memoizes functions, useMemo memoizes values",
            "useMemo is deprecated",
            "useCallback is for classes only"
        ],
        "correctAnswer": "useCallback memoizes functions, useMemo memoizes values",
        "difficulty": "hard",
        "topic": "React"
    },
    {
        "id": "fallback-react-7",
        "type": "coding",
        "question": "Create a simple counter component using the useState hook.",
        "correctAnswer": (
            "function Counter() { const [count, setCount] = useState(0); return (<div><p>{count}</p>"
            "<button onClick={() => setCount(count + 1)}>+</button>"
            "<button onClick={() => setCount(count - 1)}>-</button></div>); }"
        ),
        "difficulty": "easy",
        "topic": "React",
        "codeTemplate": "function Counter() {\n  // Your code here\n}",
        "expectedOutput": ["Component with increment/decrement buttons"]
    },
    {
        "id": "fallback-react-8",
        "type": "coding",
        "question": "Create a custom React hook that debounces a value for search input.",
        "correctAnswer": (
            "function useDebounce(value, delay) { const [debounced, setDebounced] = useState(value); "
            "useEffect(() => { const handler = setTimeout(() => setDebounced(value), delay); "
            "return () => clearTimeout(handler); }, [value, delay]); return debounced; }"
        ),
        "difficulty": "medium",
        "topic": "React",
        "codeTemplate": "function useDebounce(value, delay) {\n  // Your code here\n}"
    },
    {
        "id": "fallback-react-9",
        "type": "voice",
        "question": "Explain the difference between state and props in React.",
        "correctAnswer": (
            "Props are read-only inputs passed from a parent component, "
            "state is data owned and updated by the component itself, and changing state re-renders it."
        ),
        "difficulty": "easy",
        "topic": "React",
        "voiceEnabled": True
    },
    {
        "id": "fallback-react-10",
        "type": "voice",
        "question": "Why does React need a key prop when rendering lists?",
        "correctAnswer": (
            "Keys give each list item a stable identity so reconciliation can match elements "
            "between renders and avoid re-creating or mixing up items."
        ),
        "difficulty": "medium",
        "topic": "React",
        "voiceEnabled": True
    },
    # CSS
    {
        "id": "fallback-css-1",
        "type": "mcq",
        "question": "What is CSS Flexbox and when would you use it?",
        "options": [
            "A layout method for arranging items in rows or columns with flexible sizing",
            "A CSS framework for building responsive websites",
            "A JavaScript library for animations",
            "A tool for optimizing CSS performance"
        ],
        "correctAnswer": "A layout method for arranging items in rows or columns with flexible sizing",
        "difficulty": "easy",
        "topic": "CSS"
    },
    {
        "id": "fallback-css-2",
        "type": "mcq",
        "question": "What does CSS stand for?",
        "options": [
            "Computer Style Sheets",
            "Cascading Style Sheets",
            "Creative Style Sheets",
            "Colorful Style Sheets"
        ],
        "correctAnswer": "Cascading Style Sheets",
        "difficulty": "easy",
        "topic": "CSS"
    },
    {
        "id": "fallback-css-3",
        "type": "mcq",
        "question": "What is the difference between margin and padding?",
        "options": [
            "No difference",
            "Margin is inside, padding is outside",
            "Padding is inside, margin is outside",
            "Only margin affects layout"
        ],
        "correctAnswer": "Padding is inside, margin is outside",
        "difficulty": "medium",
        "topic": "CSS"
    },
    {
        "id": "fallback-css-4",
        "type": "coding",
        "question": "Write CSS that centers a child element horizontally and vertically inside its parent.",
        "correctAnswer": ".parent { display: flex; justify-content: center; align-items: center; }",
        "difficulty": "easy",
        "topic": "CSS",
        "codeTemplate": ".parent {\n  /* Your code here */\n}"
    },
    {
        "id": "fallback-css-5",
        "type": "voice",
        "question": "Explain how CSS specificity decides which rule wins.",
        "correctAnswer": (
            "Specificity ranks selectors: inline styles beat id selectors, ids beat classes, "
            "classes beat element selectors, and the later rule wins when specificity is equal."
        ),
        "difficulty": "medium",
        "topic": "CSS",
        "voiceEnabled": True
    },
    # HTML
    {
        "id": "fallback-html-1",
        "type": "mcq",
        "question": "Why should images have an alt attribute?",
        "options": [
            "It describes the image for screen readers and when the image fails to load",
            "It makes the image load faster",
            "It is required for CSS styling",
            "It sets the image size"
        ],
        "correctAnswer": "It describes the image for screen readers and when the image fails to load",
        "difficulty": "easy",
        "topic": "HTML"
    },
    {
        "id": "fallback-html-2",
        "type": "mcq",
        "question": "Which element is the semantic choice for the main navigation links of a page?",
        "options": ["<div>", "<nav>", "<span>", "<section>"],
        "correctAnswer": "<nav>",
        "difficulty": "easy",
        "topic": "HTML"
    },
    {
        "id": "fallback-html-3",
        "type": "voice",
        "question": "What is semantic HTML and why does it matter?",
        "correctAnswer": (
            "Semantic HTML uses elements that describe their meaning, such as header, nav, article "
            "and footer, which improves accessibility, search engine understanding and maintainability."
        ),
        "difficulty": "easy",
        "topic": "HTML",
        "voiceEnabled": True
    },
    # Node.js
    {
        "id": "fallback-node-1",
        "type": "mcq",
        "question": "What is Node.js?",
        "options": ["A browser", "A JavaScript runtime", "A database", "A CSS framework"],
        "correctAnswer": "A JavaScript runtime",
        "difficulty": "easy",
        "topic": "Node.js"
    },
    {
        "id": "fallback-node-2",
        "type": "mcq",
        "question": "Why is blocking the event loop harmful in a Node.js server?",
        "options": [
            "No other request can be processed until the blocking work finishes",
            "It uses too much disk space",
            "It disables garbage collection",
            "It closes all open sockets"
        ],
        "correctAnswer": "No other request can be processed until the blocking work finishes",
        "difficulty": "medium",
        "topic": "Node.js"
    },
    {
        "id": "fallback-node-3",
        "type": "coding",
        "question": "Write an Express route handler that returns a user by id or a 404 when it is missing.",
        "correctAnswer": (
            "app.get('/users/:id', (req, res) => { const user = users.find(u => u.id === req.params.id); "
            "if (!user) { return res.status(404).json({ error: 'Not found' }); } return res.json(user); });"
        ),
        "difficulty": "medium",
        "topic": "Node.js",
        "codeTemplate": "app.get('/users/:id', (req, res) => {\n  // Your code here\n});"
    },
    {
        "id": "fallback-node-4",
        "type": "voice",
        "question": "Explain what middleware is in an Express application.",
        "correctAnswer": (
            "Middleware are functions that receive the request, response and next callback, "
            "run in order for each request and can modify them, end the response or pass control on."
        ),
        "difficulty": "medium",
        "topic": "Node.js",
        "voiceEnabled": True
    },
]


class FallbackQuestionBank:
    """Static local question pool filtered by topic, difficulty and kind."""

    def __init__(self, items: Optional[List[Dict]] = None, rng: Optional[random.Random] = None):
        self.questions = [Question.model_validate(item) for item in (items or QUESTION_BANK)]
        self._rng = rng or random.Random()

    def matching(self, topic: str, difficulty: str) -> Dict[QuestionKind, List[Question]]:
        """
        Questions for a topic/difficulty filter, grouped by kind.

        "All" / "all" match everything.
        """
        pool = {kind: [] for kind in QuestionKind}
        for question in self.questions:
            if topic.lower() != "all" and question.topic.lower() != topic.lower():
                continue
            if difficulty != "all" and question.difficulty != difficulty:
                continue
            pool[question.kind].append(question)
        return pool

    def pick(self, candidates: List[Question], count: int) -> List[Question]:
        """Random selection of count questions, in a shuffled order."""
        chosen = list(candidates)
        self._rng.shuffle(chosen)
        return chosen[:count]
